# -*- coding: utf-8 -*-
"""
The :mod:`quakefetch.request` module handles bulk data requests. This includes:

    * Size estimates - the submodule size.py estimates the number of bytes a request \
      line will return, from the band code of its channel and its duration.
    * The :class:`~quakefetch.request.document.RequestDocument` class, which reads \
      and writes the plain-text request dialect, one block per data center.
    * Splitting requests into pieces small enough to be downloaded in one go - \
      :func:`~quakefetch.request.chunk.chunk_document`.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

from .chunk import chunk_document, chunk_request, time_split  # NOQA
from .document import (
    DataCenterRequest,  # NOQA
    RequestDocument,  # NOQA
    RequestLine,  # NOQA
    read_request,  # NOQA
)
from .size import band_to_sps, estimate_size  # NOQA
