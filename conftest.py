def pytest_configure(config):
    config.addinivalue_line(
        "markers", "property: property-based tests driven by hypothesis"
    )
    config.addinivalue_line(
        "markers", "integration: tests that talk to a scripted daemon over TCP"
    )
