"""
Exception and warning types raised by the fusion and clustering routines.
"""

from __future__ import annotations


__all__ = ["ConfigurationError", "NumericDegeneracyError", "NonConvergenceWarning"]


class ConfigurationError(ValueError):
    """
    Invalid parameters or inputs, detected before any computation starts.

    Examples are a neighbourhood size that exceeds the number of samples, a
    feature matrix with missing values, or a distance matrix with a non-zero
    diagonal.
    """


class NumericDegeneracyError(ArithmeticError):
    """
    A similarity structure that cannot be normalised, e.g. a sample whose
    similarities to every other sample underflowed to zero.
    """


class NonConvergenceWarning(RuntimeWarning):
    """
    The PAM SWAP phase reached its swap cap before every swap cost was
    non-negative. The best medoid set found so far is still returned.
    """
