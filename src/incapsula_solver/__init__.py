"""Incapsula GeeTest challenge resolver.

Blocks the GeeTest script served by the Incapsula protection layer, captures
the challenge, has it solved by a 2Captcha-compatible service and replays the
answer from inside the page so the browsing session can continue.
"""

__version__ = "0.1.0"
