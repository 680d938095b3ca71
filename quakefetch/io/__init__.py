# -*- coding: utf-8 -*-
"""
The :mod:`quakefetch.io` module handles the network and file input/output performed by
quakefetch. This includes:

    * Sending requests to FDSN web services - the submodule transport.py wraps \
      HTTP GET/POST requests and records their outcome in a \
      :class:`~quakefetch.io.transport.Result`.
    * Querying the FedCatalog service for data availability, which returns a \
      request document - :class:`~quakefetch.io.availability.AvailabilityQuery`.
    * Downloading the data for a request document, with a checkpoint written after \
      each data center request - :class:`~quakefetch.io.download.Downloader`.
    * Decoding miniSEED data and writing waveform files - \
      :class:`~quakefetch.io.codec.WaveformCodec`.
    * Searching FDSN event and station services for earthquakes and stations - \
      :class:`~quakefetch.io.metadata.EventQuery` and \
      :class:`~quakefetch.io.metadata.StationQuery`.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

from .availability import FEDCATALOG_IRIS, AvailabilityQuery  # NOQA
from .codec import WaveformCodec  # NOQA
from .download import Downloader, classify  # NOQA
from .metadata import (  # NOQA
    EVENT_USGS,
    STATION_IRIS,
    EventQuery,
    StationQuery,
    event_from_id,
    write_events,
    write_stations,
)
from .query import FDSNQuery  # NOQA
from .transport import Result, Transport  # NOQA
