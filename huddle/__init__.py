"""
Huddle - chat application backend: Google sign-in and session credentials.
"""
