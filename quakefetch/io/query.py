# -*- coding: utf-8 -*-
"""
Module containing the base class for queries made to FDSN web services (FedCatalog,
event and station services), which share the same url-encoded key=value parameters.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

from __future__ import annotations

from urllib.parse import urlencode

from obspy import UTCDateTime

import quakefetch.util as util


class FDSNQuery:
    """
    Base class for FDSN web service queries.

    Parameters
    ----------
    url : str
        Service query url.

    Attributes
    ----------
    args : dict
        Query parameters, in the order they were set. Values may be str, int, float
        or `obspy.UTCDateTime`; each is formatted according to its type.

    """

    def __init__(self, url: str) -> None:
        """Instantiate the FDSNQuery object."""

        self.url = url
        self.args = {}

    def __str__(self) -> str:
        """Return short summary string of the query."""

        out = f"quakefetch {type(self).__name__}\n\tUrl\t:\t{self.url}"
        for key, value in self.args.items():
            out += f"\n\t{key}\t:\t{format_value(value)}"

        return out

    def set_time_range(self, starttime, endtime) -> None:
        """Set the time range to query for."""

        self.args["start"] = UTCDateTime(starttime)
        self.args["end"] = UTCDateTime(endtime)

    def use_duration(self, duration: float) -> None:
        """
        Set the end of the time range from the current start time and a duration.

        Parameters
        ----------
        duration:
            Length of the time range, in seconds. Nothing is done if no start time has
            been set.

        """

        if "start" not in self.args:
            return
        self.args["end"] = self.args["start"] + duration

    def set_network(self, network: str) -> None:
        """
        Set the networks to select. Use wildcards "*" and "?", "-" for negation and
        comma-separated lists with no spaces.

        """

        self.args["net"] = network

    def set_station(self, station: str) -> None:
        """Set the stations to select (see `set_network` for syntax)."""
        self.args["sta"] = station

    def set_location(self, location: str) -> None:
        """Set the locations to select (see `set_network` for syntax)."""
        self.args["loc"] = location

    def set_channel(self, channel: str) -> None:
        """Set the channels to select (see `set_network` for syntax)."""
        self.args["cha"] = channel

    def set_region(
        self, minlon: float, maxlon: float, minlat: float, maxlat: float
    ) -> None:
        """Set a rectangular region (in degrees) to search within."""

        self.args["minlon"] = float(minlon)
        self.args["maxlon"] = float(maxlon)
        self.args["minlat"] = float(minlat)
        self.args["maxlat"] = float(maxlat)

    def set_origin(self, lon: float, lat: float) -> None:
        """Set the origin of a radial search; use with `set_radius`."""

        self.args["lon"] = float(lon)
        self.args["lat"] = float(lat)

    def set_radius(self, minradius: float, maxradius: float) -> None:
        """Set the radii (in degrees) of a radial search; use with `set_origin`."""

        self.args["minradius"] = float(minradius)
        self.args["maxradius"] = float(maxradius)

    def set_event(self, event) -> None:
        """
        Centre the query on an earthquake: the time range starts and ends at its origin
        time, and its epicentre is the origin of a radial search.

        Parameters
        ----------
        event : `obspy.core.event.Event` object
            Earthquake to centre the query on.

        """

        origin = util.event_origin(event)
        self.set_time_range(origin.time, origin.time)
        self.set_origin(origin.longitude, origin.latitude)

    def to_url(self) -> str:
        """Get the query as a url."""

        query = urlencode(
            {key: format_value(value) for key, value in self.args.items()},
            safe=",*:",
        )

        return f"{self.url}?{query}"


def format_value(value) -> str:
    """Format a query parameter value according to its type."""

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value:d}"
    if isinstance(value, float):
        return f"{value:f}"
    if isinstance(value, UTCDateTime):
        return value.strftime(util.TIME_FORMAT)

    return str(value)
