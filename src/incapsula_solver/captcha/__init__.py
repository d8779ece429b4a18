"""Captcha handling module.

Main components:
- IGeeTestSolver: Base interface for GeeTest solving services
- TwoCaptchaGeeTestSolver: request/poll client for the 2Captcha API
"""

# Base interface for captcha solver implementations
from .interfaces import IGeeTestSolver

# Concrete solver implementation
from .solvers import TwoCaptchaGeeTestSolver

# Public API exports
__all__ = [
    "IGeeTestSolver",
    "TwoCaptchaGeeTestSolver",
]
