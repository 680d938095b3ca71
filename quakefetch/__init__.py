# -*- coding: utf-8 -*-
"""
quakefetch - a Python package to request seismic waveform data in bulk from FDSN data
centers, splitting large requests into manageable pieces and resuming interrupted
downloads.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("quakefetch")
except PackageNotFoundError:
    __version__ = "unknown"

from quakefetch.request import (  # NOQA
    DataCenterRequest,
    RequestDocument,
    RequestLine,
    chunk_document,
    estimate_size,
    read_request,
)
from quakefetch.io import AvailabilityQuery, Downloader, Transport  # NOQA
