# -*- coding: utf-8 -*-
"""
Module to build data availability queries for the IRIS FedCatalog service, which
returns a request document listing which data centers hold the requested data.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

from __future__ import annotations

import logging

import pandas as pd

import quakefetch.util as util
from quakefetch.io.query import FDSNQuery, format_value
from quakefetch.io.transport import Transport
from quakefetch.request.document import RequestDocument


FEDCATALOG_IRIS = "https://service.iris.edu/irisws/fedcatalog/1/query"

# Data quality names -> FDSN quality codes
# http://ds.iris.edu/ds/nodes/dmc/manuals/breq_fast/#quality-option
QUALITY_CODES = {
    "all": "*",
    "d": "D",
    "unknown": "D",
    "raw": "R",
    "quality": "Q",
    "qc": "Q",
    "modified": "M",
    "merged": "M",
    "best": "B",
}


class AvailabilityQuery(FDSNQuery):
    """
    Query for data availability, made to the FedCatalog service.

    The query is initialised with: location = "*", quality = "B", format = "request"
    and nodata = 404.

    Parameters
    ----------
    url : str, optional
        FedCatalog query url. (Default: the IRIS FedCatalog service)

    Attributes
    ----------
    args : dict
        Query parameters, in the order they were set. Values may be str, int, float
        or `obspy.UTCDateTime`; each is formatted according to its type.

    """

    def __init__(self, url: str = FEDCATALOG_IRIS) -> None:
        """Instantiate the AvailabilityQuery object."""

        super().__init__(url)
        self.args["loc"] = "*"
        self.args["quality"] = "B"
        self.args["format"] = "request"
        self.args["nodata"] = 404

    def set_quality(self, quality: str) -> None:
        """
        Set the data quality to request.

        Parameters
        ----------
        quality:
            One of "all", "raw", "qc", "quality", "modified", "merged", "best",
            "unknown", "d", or an FDSN quality code ("*", "D", "R", "Q", "M", "B").

        Raises
        ------
        ValueError
            If `quality` is not recognised.

        """

        if quality in QUALITY_CODES.values():
            self.args["quality"] = quality
        elif quality.lower() in QUALITY_CODES:
            self.args["quality"] = QUALITY_CODES[quality.lower()]
        else:
            raise ValueError(
                f"Unknown data quality '{quality}' - use one of "
                f"{', '.join(QUALITY_CODES)}."
            )

    def is_ok(self, need_net_sta: bool = False) -> bool:
        """
        Check whether the query is complete enough to send.

        Parameters
        ----------
        need_net_sta:
            Whether network and station must also be set.

        Returns
        -------
         :
            True if channel, start and end (and network and station, if required) are
            all set.

        """

        required = ["cha", "start", "end"]
        if need_net_sta:
            required.extend(["net", "sta"])

        return all(key in self.args for key in required)

    def from_station_file(self, station_file: str, **kwargs) -> str:
        """
        Create a long-form query for a list of stations, suitable for POSTing.

        Location, channel, start and end are taken from this query; network and station
        from the first two columns of the station file.

        Parameters
        ----------
        station_file:
            Path to station file. The first line is a header; each following line must
            start with the network and station codes, separated by whitespace.
        kwargs:
            Passthrough for `pandas.read_csv` kwargs.

        Returns
        -------
         :
            One request line per station: "NET STA LOC CHA START END".

        Raises
        ------
        MissingQueryParameterException
            If location, channel, start or end is not set.

        """

        for key in ("loc", "cha", "start", "end"):
            if key not in self.args:
                raise util.MissingQueryParameterException(key)

        loc, cha, start, end = [
            format_value(self.args[key]) for key in ("loc", "cha", "start", "end")
        ]

        logging.info(f"\tReading station file: {station_file}")
        kwargs.setdefault("sep", r"\s+")
        stations = pd.read_csv(station_file, dtype=str, **kwargs)

        lines = []
        for net, sta in zip(stations.iloc[:, 0], stations.iloc[:, 1]):
            lines.append(f"{net:<5s} {sta:<8s} {loc:<4s} {cha:<5s} {start} {end}")

        return "\n".join(lines) + "\n"

    def fetch(
        self, transport: Transport | None = None, station_file: str | None = None
    ) -> RequestDocument | None:
        """
        Send the query and parse the request document returned.

        Parameters
        ----------
        transport:
            Used to send the query. A new Transport is created if not given.
        station_file:
            If given, the query is POSTed as a list of stations built with
            :func:`~quakefetch.io.availability.AvailabilityQuery.from_station_file`.
            Otherwise, the query is sent as a GET request.

        Returns
        -------
         :
            Request document, or None if no data is available or the query failed.

        """

        if transport is None:
            transport = Transport()

        if station_file is not None:
            body = self.from_station_file(station_file)
            header = {
                key: format_value(value)
                for key, value in self.args.items()
                if key in ("quality", "format", "nodata")
            }
            body = "".join(f"{k}={v}\n" for k, v in header.items()) + body
            result = transport.post(self.url, body)
        else:
            result = transport.get(self.to_url())

        if result.is_empty:
            logging.info("\tNo data available")
            return None
        if not result.is_ok:
            logging.warning(f"\tAvailability query failed: {result.error_message}")
            return None

        document = RequestDocument.parse(result.text)
        if document is None:
            logging.info("\tNo data center requests found in response")

        return document
