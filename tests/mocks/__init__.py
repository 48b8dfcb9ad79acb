"""
Mocking infrastructure for minitelnet tests.

This module provides reusable mock components for testing network-dependent
functionality without requiring actual network connections.
"""
