"""Notifications app package.

The notification delivery queue: producers insert tenant-scoped events, a
polling worker claims due events, routes them through the tenant's rules to
recipients on SMS, email, in-app and push channels, and records per-channel
outcomes with event-level retry.
"""
