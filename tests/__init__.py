"""
Zephyr Scale Reporter - Test Suite Package.

Unit tests for the Zephyr client, lifecycle reporter, configuration
layer and pytest plugin. No test talks to a real Zephyr instance.
"""
