"""Core domain types for restocache.

Contains the restaurant model, the error taxonomy and the gateway
protocols that both backing stores implement.
"""
