"""Hotels app package.

A hotel is the tenant of the platform: every notification event, routing
rule and staff alert belongs to exactly one hotel. The app also keeps the
staff directory used to resolve role-based notification recipients.
"""
