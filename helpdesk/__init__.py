"""
Solar Helpdesk Backend

Subscriber synchronization, caching and ticket write-through for the
support console.
"""
