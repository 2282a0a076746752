"""
Authentication against identity-provider issued JWTs.
"""
