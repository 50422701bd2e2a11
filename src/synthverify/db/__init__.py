"""
Database layer for SynthVerify.
"""
