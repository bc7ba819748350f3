"""Define static metadata for fsformats

The long description parameter is used in the fsformats top-level docstring.
This file cannot import fsformats or use relative imports.
"""

__version__ = '0.1.0'

long_description = """
Read and write access to FreeSurfer_'s neuroimaging file formats:

* surface meshes (binary triangle and quadrangle files, ASCII ``.asc``),
* morphometry ("curv") files in the new and old formats,
* MGH_ and MGZ volumes,
* annotations (``.annot``) with old- and new-style colortables,
* ASCII labels (``.label``),
* binary weight / paint files (``.w``),
* ASCII colortables (LUTs),
* surface patches, binary and ASCII.

All binary numbers are big-endian; files with a ``.gz`` (or ``.mgz``) suffix
are transparently gzip compressed.  Arrays are NumPy arrays, colortables are
pandas DataFrames.

.. _Freesurfer: https://surfer.nmr.mgh.harvard.edu
.. _MGH: https://surfer.nmr.mgh.harvard.edu/fswiki/FsTutorial/MghFormat

Testing
=======

To test an installed version of fsformats, install the test dependencies
and run pytest_::

    pip install fsformats[test]
    pytest --pyargs fsformats

.. _pytest: https://docs.pytest.org

License
=======

fsformats is licensed under the terms of the MIT license.  See the COPYING
file.
"""
