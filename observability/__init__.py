"""
Structured events for the voice session and the assistant API.
"""
