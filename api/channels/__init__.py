"""
Messaging channel integrations.
"""
