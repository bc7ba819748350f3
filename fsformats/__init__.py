# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the fsformats package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##

from .info import __version__
from .info import long_description as __doc__

__doc__ += """
Quickstart
==========

::

   import fsformats as fsf

   coords, faces = fsf.read_geometry('lh.white')
   thickness = fsf.read_morph_data('lh.thickness')
   labels, ctab = fsf.read_annot('lh.aparc.annot')

   img = fsf.load('brain.mgz')
   data = img.get_fdata()
   affine = img.affine

   fsf.write_geometry('lh.white.copy', coords, faces)
   fsf.save(img, 'brain_copy.mgh')

Face arrays are 1-based in memory; vertex numbers in labels, weights,
patches and annotations are 0-based.
"""

# module imports
from . import errors, imageglobals

# isort: split

# object imports
from .annot import read_annot, write_annot, write_colortable_from_annot
from .colortable import (
    check_colortable,
    colortable_from_arrays,
    pack_color,
    read_colortable,
    unpack_color,
    write_colortable,
)
from .errors import (
    ColorCollisionError,
    FormatError,
    FSFormatsError,
    SizeMismatchError,
    UnsupportedVariantError,
    ValidationError,
)
from .label import read_label, write_label
from .mghformat import MGHError, MGHHeader, MGHImage, load, read_mgh, save, write_mgh
from .morph import read_morph, read_morph_data, write_morph, write_morph_data
from .openers import Opener
from .patch import Patch, read_patch, read_patch_asc, write_patch, write_patch_asc
from .surface import (
    quad_to_tris,
    read_geometry,
    read_geometry_asc,
    read_geometry_header,
    read_quad_faces,
    read_surface,
    tris_to_quad,
    write_geometry,
    write_geometry_asc,
    write_surface,
)
from .weight import read_weight, write_weight


def test(label=None, verbose=1, extra_argv=None, doctests=False, coverage=False):
    """
    Run tests for fsformats using pytest

    Parameters
    ----------
    label : None
        Unused.
    verbose: int, optional
        Verbosity value for test outputs. Positive values increase verbosity, and
        negative values decrease it. Default is 1.
    extra_argv : list, optional
        List with any extra arguments to pass to pytest.
    doctests: bool, optional
        If True, run doctests in module. Default is False.
    coverage: bool, optional
        If True, report coverage. Default is False.

    Returns
    -------
    code : ExitCode
        Returns the result of running the tests as a ``pytest.ExitCode`` enum
    """
    import pytest

    args = []

    if label is not None:
        raise NotImplementedError('Labels cannot be set at present')

    verbose = int(verbose)
    if verbose > 0:
        args.append('-' + 'v' * verbose)
    elif verbose < 0:
        args.append('-' + 'q' * -verbose)

    if extra_argv:
        args.extend(extra_argv)
    if doctests:
        args.append('--doctest-modules')
    if coverage:
        args.extend(['--cov', 'fsformats'])

    args.extend(['--pyargs', 'fsformats'])

    return pytest.main(args=args)
