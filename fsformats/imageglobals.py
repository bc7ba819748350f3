# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the fsformats package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Defaults for codecs and headers

error_level is the problem level at which a header check will raise an
error instead of only logging the problem.  Thus a level of 0 will result in
an error for any problem at all, and a level of 50 will mean no errors will
be raised.

``logger`` is the default logger (python log instance) used by all codecs.
Decoding steps are reported at DEBUG level.

To set the log level (log message appears for problem of level >= log level),
use e.g. ``logger.setLevel(10)``.
"""
import logging

error_level = 40
logger = logging.getLogger('fsformats.global')
logger.addHandler(logging.StreamHandler())


class ErrorLevel:
    """Context manager to set log error level"""

    def __init__(self, level):
        self.level = level

    def __enter__(self):
        global error_level
        self._original_level = error_level
        error_level = self.level

    def __exit__(self, exc, value, tb):
        global error_level
        error_level = self._original_level
        return False


class LoggingOutputSuppressor:
    """Context manager to prevent global logger from printing"""

    def __enter__(self):
        self.orig_handlers = list(logger.handlers)
        for handler in self.orig_handlers:
            logger.removeHandler(handler)

    def __exit__(self, exc, value, tb):
        for handler in self.orig_handlers:
            logger.addHandler(handler)
