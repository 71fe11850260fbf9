"""
Core domain for Citizen Alerts.

Pure models and functions: no I/O, no hidden state.
"""
