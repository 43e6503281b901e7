"""
TravelExplore identity core.

Establishes who a caller is (local email/password or Google sign-in) and
what they may do (ordinary or administrative), with bearer tokens and
server-side sessions as the two proofs of identity.
"""

__version__ = "1.0.0"
