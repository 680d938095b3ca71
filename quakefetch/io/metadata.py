# -*- coding: utf-8 -*-
"""
Module to search FDSN event and station services for earthquakes and stations, and to
print short summaries of the results. An earthquake found this way can be used to
centre an availability query on its origin time and epicentre.

Event searches return QuakeML, read with :func:`obspy.read_events`; station searches
return StationXML, read with :func:`obspy.read_inventory`.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

from __future__ import annotations

import io
import logging
import re
import sys

from obspy import Catalog, Inventory, read_events, read_inventory

import quakefetch.util as util
from quakefetch.io.query import FDSNQuery
from quakefetch.io.transport import Transport


EVENT_USGS = "https://earthquake.usgs.gov/fdsnws/event/1/query"
EVENT_IRIS = "https://service.iris.edu/fdsnws/event/1/query"
EVENT_ISC = "http://www.isc.ac.uk/fdsnws/event/1/query"
STATION_IRIS = "https://service.iris.edu/fdsnws/station/1/query"

# Catalog prefix of an event id -> event service holding that catalog
EVENT_CATALOGS = {
    "usgs": EVENT_USGS,
    "isc": EVENT_ISC,
    "gcmt": EVENT_IRIS,
}

_EVENTID_RE = re.compile(r"(?:eventid|evid)=([^&/]+)")


class EventQuery(FDSNQuery):
    """
    Search for earthquakes in an FDSN event service.

    The query is initialised with: nodata = 404 and format = "xml" (QuakeML).

    Parameters
    ----------
    url : str, optional
        Event service query url. (Default: the USGS event service)
    catalog : str, optional
        Name of the catalog searched, used as the prefix of the event ids written by
        :func:`~quakefetch.io.metadata.write_events`, or None to leave them
        unprefixed. (Default "usgs")

    """

    def __init__(self, url: str = EVENT_USGS, catalog: str | None = "usgs") -> None:
        """Instantiate the EventQuery object."""

        super().__init__(url)
        self.catalog = catalog
        self.args["nodata"] = 404
        self.args["format"] = "xml"

    @classmethod
    def from_event_id(cls, eventid: str) -> EventQuery:
        """
        Create a query for a single earthquake, from an id such as "usgs:us7000abcd".

        Parameters
        ----------
        eventid:
            "catalog:id", where catalog is one of "usgs", "isc" or "gcmt" and id is the
            earthquake's id in that catalog.

        Raises
        ------
        EventIDException
            If `eventid` does not name a known catalog.

        """

        catalog, sep, eid = eventid.partition(":")
        catalog = catalog.lower()
        if not sep or not eid:
            raise util.EventIDException(eventid, "Expected ':'")
        if catalog not in EVENT_CATALOGS:
            raise util.EventIDException(eventid, f"Unknown catalog '{catalog}'")

        query = cls(url=EVENT_CATALOGS[catalog], catalog=catalog)
        if catalog == "gcmt":
            query.args["catalog"] = "GCMT"
        query.args["eventid"] = eid

        return query

    def set_magnitude(self, minmag: float, maxmag: float) -> None:
        """Set the range of magnitudes to search for."""

        self.args["minmag"] = float(minmag)
        self.args["maxmag"] = float(maxmag)

    def set_depth(self, mindepth: float, maxdepth: float) -> None:
        """Set the range of depths (in km) to search for."""

        self.args["mindepth"] = float(mindepth)
        self.args["maxdepth"] = float(maxdepth)

    def set_event(self, event, window: float = 60.0) -> None:
        """
        Search for earthquakes within `window` seconds of the origin time of `event`,
        e.g. the same earthquake as reported by another catalog.

        """

        origin = util.event_origin(event)
        self.set_time_range(origin.time - window, origin.time + window)

    def fetch(self, transport: Transport | None = None) -> Catalog | None:
        """
        Send the query and read the earthquakes returned.

        Parameters
        ----------
        transport:
            Used to send the query. A new Transport is created if not given.

        Returns
        -------
         :
            Earthquakes found, or None if none were found or the query failed.

        """

        data = _get(self, transport, "Event search")
        if data is None:
            return None

        catalog = read_events(io.BytesIO(data), format="QUAKEML")
        logging.info(f"\tFound {len(catalog)} events")

        return catalog


class StationQuery(FDSNQuery):
    """
    Search for stations in an FDSN station service.

    The query is initialised with: level = "station", nodata = 404 and format = "xml"
    (StationXML).

    Parameters
    ----------
    url : str, optional
        Station service query url. (Default: the IRIS station service)

    """

    def __init__(self, url: str = STATION_IRIS) -> None:
        """Instantiate the StationQuery object."""

        super().__init__(url)
        self.args["level"] = "station"
        self.args["nodata"] = 404
        self.args["format"] = "xml"

    def set_level(self, level: str) -> None:
        """Set the level of detail: "network", "station", "channel" or "response"."""

        if level not in ("network", "station", "channel", "response"):
            raise ValueError(f"Unknown station level '{level}'.")
        self.args["level"] = level

    def fetch(self, transport: Transport | None = None) -> Inventory | None:
        """
        Send the query and read the stations returned.

        Parameters
        ----------
        transport:
            Used to send the query. A new Transport is created if not given.

        Returns
        -------
         :
            Stations found, or None if none were found or the query failed.

        """

        data = _get(self, transport, "Station search")
        if data is None:
            return None

        inventory = read_inventory(io.BytesIO(data), format="STATIONXML")
        n = sum(len(network) for network in inventory)
        logging.info(f"\tFound {n} stations")

        return inventory


def event_from_id(eventid: str, transport: Transport | None = None):
    """
    Look up a single earthquake from its id, e.g. "usgs:us7000abcd".

    Parameters
    ----------
    eventid:
        "catalog:id", where catalog is one of "usgs", "isc" or "gcmt".
    transport:
        Used to send the query. A new Transport is created if not given.

    Returns
    -------
    event : `obspy.core.event.Event` object
        The earthquake.

    Raises
    ------
    EventIDException
        If `eventid` is malformed, or the catalog does not return exactly one event.

    """

    logging.info(f"\tRequesting event info for {eventid}")
    catalog = EventQuery.from_event_id(eventid).fetch(transport)
    if catalog is None or len(catalog) == 0:
        raise util.EventIDException(eventid, "No event found")
    if len(catalog) > 1:
        raise util.EventIDException(eventid, f"{len(catalog)} events found")

    return catalog[0]


def event_id(event, catalog: str | None = None) -> str:
    """
    Get the id of an earthquake in its catalog, taken from its resource id. If
    `catalog` is given, the id is prefixed with it so that it can be passed to
    :func:`~quakefetch.io.metadata.event_from_id`.

    """

    resource_id = str(event.resource_id)
    match = _EVENTID_RE.search(resource_id)
    if match is not None:
        eid = match.group(1)
    else:
        eid = resource_id.rstrip("/").rsplit("/", 1)[-1]

    return f"{catalog}:{eid}" if catalog else eid


def write_events(catalog: Catalog, fp=None, source: str | None = None) -> None:
    """
    Print one line per earthquake: origin time, latitude, longitude, depth (km),
    magnitude and magnitude type, agency, and event id.

    Parameters
    ----------
    catalog:
        Earthquakes to print.
    fp : file-like object, optional
        Where to print to. (Default: stdout)
    source : str, optional
        Catalog name to prefix event ids with.

    """

    fp = fp if fp is not None else sys.stdout
    fp.write(
        f"{'Origin':<19s} {'Lat.':<6s} {'Lon.':<7s} {'Depth':<6s} {'Mag.':<4s} "
        f"{'':<3s} Agency EventID\n"
    )
    for event in catalog:
        origin = util.event_origin(event)
        magnitude = event.preferred_magnitude()
        if magnitude is None and event.magnitudes:
            magnitude = event.magnitudes[0]

        depth = origin.depth / 1000.0 if origin.depth is not None else float("nan")
        if magnitude is not None:
            mag, magtype = magnitude.mag, magnitude.magnitude_type or ""
            magauthor = _agency(magnitude)
        else:
            mag, magtype, magauthor = float("nan"), "", ""

        fp.write(
            f"{origin.time.strftime(util.TIME_FORMAT):>19s} "
            f"{origin.latitude:6.2f} {origin.longitude:7.2f} {depth:6.2f} "
            f"{mag:4.2f} {magtype:<3s} {_agency(origin)}/{magauthor} "
            f"{event_id(event, source)}\n"
        )


def write_stations(
    inventory: Inventory, fp=None, show_time: bool = False, epochs: bool = False
) -> None:
    """
    Print one line per station: network and station codes, latitude, longitude,
    elevation (m), and site name, sorted by network and station.

    Parameters
    ----------
    inventory:
        Stations to print.
    fp : file-like object, optional
        Where to print to. (Default: stdout)
    show_time : bool, optional
        Whether to also print when each station was installed and removed.
    epochs : bool, optional
        Whether to print every epoch of a station. By default, only the first epoch
        found for each network and station code is printed.

    """

    fp = fp if fp is not None else sys.stdout
    stations = []
    seen = set()
    for network in inventory:
        for station in network:
            key = (network.code, station.code)
            if not epochs and key in seen:
                continue
            seen.add(key)
            stations.append((network.code, station))
    stations.sort(key=lambda x: (x[0], x[1].code))

    if show_time:
        fp.write(
            f"{'Net':<3s} {'Sta':<5s} {'Lat.':<8s} {'Lon.':<9s} {'Elev.':<7s} "
            f"{'TimeOn':<19s} {'TimeOff':<19s} SiteName\n"
        )
    else:
        fp.write(
            f"{'Net':<3s} {'Sta':<5s} {'Lat.':<8s} {'Lon.':<9s} {'Elev.':<7s} "
            "SiteName\n"
        )

    for net, station in stations:
        sitename = station.site.name if station.site and station.site.name else ""
        out = (
            f"{net:<3s} {station.code:<5s} {station.latitude:8.4f} "
            f"{station.longitude:9.4f} {station.elevation:7.2f} "
        )
        if show_time:
            out += f"{_time(station.start_date):>19s} {_time(station.end_date):>19s} "
        fp.write(f"{out}{sitename}\n")


def _get(query: FDSNQuery, transport: Transport | None, name: str) -> bytes | None:
    """GET a query, returning the data, or None if nothing was found or it failed."""

    if transport is None:
        transport = Transport()

    result = transport.get(query.to_url())
    if result.is_empty:
        logging.info("\tNothing found")
        return None
    if not result.is_ok:
        logging.warning(f"\t{name} failed: {result.error_message}")
        return None

    return result.data


def _agency(obj) -> str:
    """Agency id from the creation info of an origin or magnitude, if any."""

    if obj.creation_info is None or obj.creation_info.agency_id is None:
        return ""
    return obj.creation_info.agency_id


def _time(timestamp) -> str:
    return timestamp.strftime(util.TIME_FORMAT) if timestamp is not None else ""
