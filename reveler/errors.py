#!/usr/bin/env python3
"""
errors.py - Exception hierarchy for the commitment scheme

- CommitError: base class for everything raised by reveler
- ConfigurationError: caller misuse (wrong N, residues outside [0, Q),
  unsupported parameter sets). Fatal, never retried.
- RandomnessError: the entropy source failed while sampling parameters.
  Fatal, there is no fallback to a weaker generator.
"""


class CommitError(Exception):
    """Base class for commitment scheme errors."""


class ConfigurationError(CommitError, ValueError):
    """Inputs or parameters do not match the protocol instance."""


class RandomnessError(CommitError, RuntimeError):
    """The cryptographically secure random source failed."""
