# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the fsformats package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Exceptions raised by the fsformats codecs

Every codec call either returns a complete structure or raises one of these.
Messages carry the offending values (expected vs. found).
"""


class FSFormatsError(Exception):
    """Base class for all fsformats errors"""


class FormatError(FSFormatsError, ValueError):
    """File content is not in a recognized format

    Raised for unknown magic numbers, version tags and structural markers.
    """


class SizeMismatchError(FormatError):
    """Number of elements read differs from the number declared in the file"""

    def __init__(self, what, expected, found, source=None):
        self.what = what
        self.expected = expected
        self.found = found
        where = f' in {source!r}' if source else ''
        super().__init__(f'Expected {expected} {what}{where} but found {found}')


class ValidationError(FSFormatsError, ValueError):
    """Caller supplied values that cannot be encoded"""


class ColorCollisionError(FSFormatsError, ValueError):
    """Two colortable entries map to the same annotation value"""


class UnsupportedVariantError(FSFormatsError, NotImplementedError):
    """A known format variant that this package cannot write"""
