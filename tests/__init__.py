"""
Test Suite Initialization

ActionHub test configuration.
"""
