"""
Assistant API for the voice coding assistant.

HTTP surface next to the voice session: AI relay (Gemini), voice command
classification and structured event queries.
"""
