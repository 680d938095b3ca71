# -*- coding: utf-8 -*-
"""
Test script containing unit tests covering the event and station searches in
quakefetch.io.metadata.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

import io
import unittest

from obspy import UTCDateTime
from obspy.core.event import (
    Catalog,
    CreationInfo,
    Event,
    Magnitude,
    Origin,
    ResourceIdentifier,
)
from obspy.core.inventory import Inventory, Network, Site, Station

import quakefetch.util as util
from quakefetch.io import (
    EVENT_USGS,
    STATION_IRIS,
    AvailabilityQuery,
    EventQuery,
    Result,
    StationQuery,
    event_from_id,
    write_events,
    write_stations,
)
from quakefetch.io.metadata import EVENT_IRIS, EVENT_ISC, event_id


ORIGIN_TIME = UTCDateTime(2020, 1, 1, 12)


class FakeTransport:
    """Stand-in for a Transport that returns a canned result and records requests."""

    def __init__(self, result):
        self.result = result
        self.gets = []

    def get(self, url, params=None):
        self.gets.append(url)
        return self.result


def make_event(eventid="us7000abcd", time=ORIGIN_TIME):
    """Create an earthquake as reported by the USGS event service."""

    origin = Origin(
        time=time,
        latitude=34.5,
        longitude=-106.25,
        depth=10000.0,
        creation_info=CreationInfo(agency_id="us"),
    )
    magnitude = Magnitude(
        mag=6.1, magnitude_type="Mw", creation_info=CreationInfo(agency_id="us")
    )
    event = Event(
        resource_id=ResourceIdentifier(
            "quakeml:earthquake.usgs.gov/fdsnws/event/1/query?"
            f"eventid={eventid}&format=quakeml"
        ),
        origins=[origin],
        magnitudes=[magnitude],
    )
    event.preferred_origin_id = origin.resource_id
    event.preferred_magnitude_id = magnitude.resource_id

    return event


def quakeml_bytes(*events):
    buf = io.BytesIO()
    Catalog(events=list(events)).write(buf, format="QUAKEML")

    return buf.getvalue()


def make_inventory():
    """Create an inventory with two epochs of one station, and a second network."""

    anmo = [
        Station(
            "ANMO",
            34.9459,
            -106.4572,
            1850.0,
            site=Site(name="Albuquerque, New Mexico, USA"),
            start_date=UTCDateTime(2002, 11, 19, 21, 7),
        ),
        Station(
            "ANMO",
            34.9459,
            -106.4572,
            1840.0,
            site=Site(name="Albuquerque, New Mexico, USA"),
            start_date=UTCDateTime(1989, 8, 29),
            end_date=UTCDateTime(2002, 11, 19, 21, 6),
        ),
    ]
    ape = Station(
        "APE",
        37.0689,
        25.5306,
        620.0,
        site=Site(name="Santorini"),
        start_date=UTCDateTime(2003, 1, 1),
    )

    return Inventory(
        networks=[Network("IU", stations=anmo), Network("GE", stations=[ape])],
        source="quakefetch",
    )


def stationxml_bytes():
    buf = io.BytesIO()
    make_inventory().write(buf, format="STATIONXML")

    return buf.getvalue()


class TestEventQuery(unittest.TestCase):
    """Suite of tests for event searches."""

    def test_to_url(self):
        query = EventQuery()
        query.set_time_range(UTCDateTime(2020, 1, 1), UTCDateTime(2020, 1, 2))
        query.set_magnitude(6, 10)
        query.set_depth(0, 100)

        self.assertEqual(
            query.to_url(),
            f"{EVENT_USGS}?nodata=404&format=xml&start=2020-01-01T00:00:00"
            "&end=2020-01-02T00:00:00&minmag=6.000000&maxmag=10.000000"
            "&mindepth=0.000000&maxdepth=100.000000",
        )

    def test_from_event_id(self):
        """Each catalog prefix selects the event service that holds it."""

        query = EventQuery.from_event_id("usgs:us7000abcd")
        self.assertEqual(
            query.to_url(), f"{EVENT_USGS}?nodata=404&format=xml&eventid=us7000abcd"
        )
        self.assertEqual(query.catalog, "usgs")

        query = EventQuery.from_event_id("ISC:600516598")
        self.assertEqual(query.url, EVENT_ISC)
        self.assertEqual(query.args["eventid"], "600516598")

        query = EventQuery.from_event_id("gcmt:C201001121000A")
        self.assertEqual(query.url, EVENT_IRIS)
        self.assertEqual(query.args["catalog"], "GCMT")

        for eventid in ["us7000abcd", "usgs:", "emsc:20200101"]:
            with self.assertRaises(util.EventIDException):
                EventQuery.from_event_id(eventid)

    def test_set_event(self):
        """An event search is centred on the origin time, a minute either side."""

        query = EventQuery()
        query.set_event(make_event())

        self.assertEqual(query.args["start"], ORIGIN_TIME - 60)
        self.assertEqual(query.args["end"], ORIGIN_TIME + 60)
        self.assertNotIn("lat", query.args)

    def test_fetch(self):
        transport = FakeTransport(
            Result(http_code=200, data=quakeml_bytes(make_event()))
        )
        query = EventQuery()
        catalog = query.fetch(transport)

        self.assertEqual(transport.gets, [query.to_url()])
        self.assertEqual(len(catalog), 1)
        origin = util.event_origin(catalog[0])
        self.assertEqual(origin.time, ORIGIN_TIME)
        self.assertAlmostEqual(origin.longitude, -106.25)
        self.assertEqual(event_id(catalog[0]), "us7000abcd")
        self.assertEqual(event_id(catalog[0], "usgs"), "usgs:us7000abcd")

    def test_fetch_no_data(self):
        for result in [Result(http_code=204), Result(http_code=404)]:
            self.assertIsNone(EventQuery().fetch(FakeTransport(result)))

        result = Result(http_code=500, error="HTTP 500 Internal Server Error: oops")
        with self.assertLogs(level="WARNING"):
            self.assertIsNone(EventQuery().fetch(FakeTransport(result)))

    def test_event_from_id(self):
        transport = FakeTransport(
            Result(http_code=200, data=quakeml_bytes(make_event()))
        )
        event = event_from_id("usgs:us7000abcd", transport)

        self.assertEqual(
            transport.gets, [f"{EVENT_USGS}?nodata=404&format=xml&eventid=us7000abcd"]
        )
        self.assertEqual(util.event_origin(event).time, ORIGIN_TIME)

    def test_event_from_id_not_found(self):
        """Exactly one event must be returned for an event id."""

        with self.assertRaises(util.EventIDException):
            event_from_id("usgs:us7000abcd", FakeTransport(Result(http_code=204)))

        data = quakeml_bytes(make_event(), make_event("us7000efgh", ORIGIN_TIME + 1))
        transport = FakeTransport(Result(http_code=200, data=data))
        with self.assertRaises(util.EventIDException):
            event_from_id("usgs:us7000abcd", transport)

    def test_missing_origin(self):
        with self.assertRaises(util.MissingOriginException):
            util.event_origin(Event())

    def test_write_events(self):
        fp = io.StringIO()
        write_events(Catalog(events=[make_event()]), fp, source="usgs")
        header, line = fp.getvalue().splitlines()

        print("\t1: Assert the summary holds one line per event...")
        self.assertTrue(header.startswith("Origin "))
        self.assertTrue(header.endswith("Agency EventID"))
        self.assertEqual(
            line,
            "2020-01-01T12:00:00  34.50 -106.25  10.00 6.10 Mw  us/us usgs:us7000abcd",
        )
        print("\t   ...passed!")

        # No magnitude or depth
        event = make_event()
        event.magnitudes = []
        event.preferred_magnitude_id = None
        event.origins[0].depth = None
        fp = io.StringIO()
        write_events(Catalog(events=[event]), fp)
        line = fp.getvalue().splitlines()[1]
        self.assertEqual(line.split()[3:6], ["nan", "nan", "us/"])
        self.assertTrue(line.endswith(" us7000abcd"))


class TestStationQuery(unittest.TestCase):
    """Suite of tests for station searches."""

    def test_to_url(self):
        query = StationQuery()
        query.set_network("IU")
        query.set_station("ANMO")
        query.set_channel("BH?")

        self.assertEqual(
            query.to_url(),
            f"{STATION_IRIS}?level=station&nodata=404&format=xml&net=IU&sta=ANMO"
            "&cha=BH%3F",
        )

        query.set_level("channel")
        self.assertEqual(query.args["level"], "channel")
        with self.assertRaises(ValueError):
            query.set_level("sensor")

    def test_set_event(self):
        """Stations operating at the origin time, searched around the epicentre."""

        query = StationQuery()
        query.set_event(make_event())

        self.assertEqual(query.args["start"], ORIGIN_TIME)
        self.assertEqual(query.args["end"], ORIGIN_TIME)
        self.assertIn("lon=-106.250000&lat=34.500000", query.to_url())

    def test_availability_set_event(self):
        query = AvailabilityQuery()
        query.set_channel("BHZ")
        query.set_event(make_event())
        query.use_duration(3600)

        self.assertEqual(query.args["start"], ORIGIN_TIME)
        self.assertEqual(query.args["end"], ORIGIN_TIME + 3600)
        self.assertEqual(query.args["lon"], -106.25)
        self.assertEqual(query.args["lat"], 34.5)
        self.assertTrue(query.is_ok())

    def test_fetch(self):
        transport = FakeTransport(Result(http_code=200, data=stationxml_bytes()))
        query = StationQuery()
        inventory = query.fetch(transport)

        self.assertEqual(transport.gets, [query.to_url()])
        self.assertEqual([network.code for network in inventory], ["IU", "GE"])
        self.assertEqual(len(inventory[0]), 2)

        result = Result(http_code=404)
        self.assertIsNone(StationQuery().fetch(FakeTransport(result)))

    def test_write_stations(self):
        fp = io.StringIO()
        write_stations(make_inventory(), fp)
        lines = fp.getvalue().splitlines()

        print("\t1: Assert stations are sorted, with one line per station...")
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].startswith("Net Sta   Lat."))
        self.assertEqual(lines[1], "GE  APE    37.0689   25.5306  620.00 Santorini")
        fields = lines[2].split()
        self.assertEqual(fields[:5], ["IU", "ANMO", "34.9459", "-106.4572", "1850.00"])
        print("\t   ...passed!")

    def test_write_stations_epochs(self):
        fp = io.StringIO()
        write_stations(make_inventory(), fp, show_time=True, epochs=True)
        lines = fp.getvalue().splitlines()

        self.assertEqual(len(lines), 4)
        self.assertIn("TimeOn", lines[0])
        self.assertIn("2002-11-19T21:07:00", lines[2])
        self.assertIn("1989-08-29T00:00:00 2002-11-19T21:06:00", lines[3])
        self.assertTrue(lines[3].endswith("Albuquerque, New Mexico, USA"))


if __name__ == "__main__":
    unittest.main()
