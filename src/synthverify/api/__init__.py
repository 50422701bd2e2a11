"""
HTTP API for SynthVerify.
"""
