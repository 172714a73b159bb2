#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Error kinds raised by the fitting code. Everything derives from FittingError so callers can catch a single type, and each kind also derives from the closest builtin exception.
"""

class FittingError(Exception):
    """Base class for all fitting errors.
    
    Args:
        message (str): human-readable description
        iteration (int): index of the fitting iteration the error occurred in, if any
    
    Attributes:
        iteration (int or None): set by ``fit_shape_and_pose`` when the error is raised inside its loop
    """
    def __init__(self, message, iteration = None):
        super().__init__(message)
        self.iteration = iteration
    
    def __str__(self):
        # Use args directly, KeyError.__str__ would repr() the message
        message = str(self.args[0]) if self.args else ''
        if self.iteration is None:
            return message
        return '%s (iteration %d)' % (message, self.iteration)

class InvalidInput(FittingError, ValueError, IndexError):
    """Length mismatches, too few correspondences, empty landmark sets, out-of-range indices."""

class NumericalDegeneracy(FittingError, ArithmeticError):
    """A pose or coefficient solve is rank-deficient."""

class UnmappedLandmark(FittingError, KeyError):
    """A landmark id has no entry in the LandmarkMapper."""

class UnsupportedDataFormat(FittingError, TypeError):
    """Arrays or files that cannot be taken as they are: wrong element type, rank, shape, layout or missing keys."""
