# -*- coding: utf-8 -*-
"""
Test script containing unit tests covering the functions contained in
quakefetch.util.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

import logging
import pathlib
import tempfile
import unittest
from copy import deepcopy
from unittest import mock

import numpy as np
from obspy import Trace, Stream, UTCDateTime

import quakefetch.util as util


def mseed_stream():
    """Create a stream for testing."""

    rand = np.random.RandomState(815)
    header = {
        "network": "Z7",
        "station": "FLUR",
        "starttime": UTCDateTime(2007, 12, 31, 23, 59, 59, 915000),
        "npts": 412,
        "sampling_rate": 200.0,
        "channel": "HHE",
    }
    data = rand.randint(0, 1000, 412).astype(np.int32)
    trace1 = Trace(data=data, header=deepcopy(header))
    # Trace 2 = copy of Trace 1 with different dtype
    trace2 = trace1.copy()
    trace2.data = trace2.data.astype(float)
    # Trace 3 = trace with different channel (here different component)
    header["channel"] = "HHN"
    trace3 = Trace(data=data, header=deepcopy(header))

    return Stream(traces=[trace1, trace2, trace3])


def contiguous_stream():
    """Create a stream of one channel, split into two contiguous traces."""

    rand = np.random.RandomState(815)
    data = rand.randint(0, 1000, 800).astype(np.int32)
    header = {
        "network": "IU",
        "station": "ANMO",
        "location": "00",
        "channel": "BHZ",
        "starttime": UTCDateTime(2020, 1, 1),
        "sampling_rate": 40.0,
    }
    trace1 = Trace(data=data[:400], header=deepcopy(header))
    header["starttime"] = UTCDateTime(2020, 1, 1, 0, 0, 10)
    trace2 = Trace(data=data[400:], header=deepcopy(header))

    return Stream(traces=[trace2, trace1]), data


class TestUtil(unittest.TestCase):
    """
    Suite of tests to verify behaviour of functions contained in the util sub-module of
    quakefetch.

    """

    def test_merge_stream(self):
        """Test merging streams with different dtypes."""

        st = mseed_stream()
        st_merged = util.merge_stream(st)

        print("\t1: Assert traces that cannot be merged are kept...")
        self.assertEqual(len(st_merged), 3)
        self.assertEqual(len(st_merged.select(channel="HHE")), 2)
        self.assertEqual(len(st_merged.select(channel="HHN")), 1)
        print("\t   ...passed!")

    def test_merge_stream_contiguous(self):
        """Test merging the pieces of a request that was split in time."""

        st, data = contiguous_stream()
        st_merged = util.merge_stream(st)

        self.assertEqual(len(st_merged), 1)
        self.assertEqual(st_merged[0].stats.starttime, UTCDateTime(2020, 1, 1))
        self.assertTrue((st_merged[0].data == data).all())
        # The input is left untouched
        self.assertEqual(len(st), 2)

    def test_data_size(self):
        """Test formatting byte counts."""

        self.assertEqual(util.data_size(0), "0 bytes")
        self.assertEqual(util.data_size(-5), "0 bytes")
        self.assertEqual(util.data_size(1023), "1023 bytes")
        self.assertEqual(util.data_size(1536), "  1.50 KiB")
        self.assertEqual(util.data_size(200 * 1024**2), "200.00 MiB")
        self.assertEqual(util.data_size(3 * 1024**3), "  3.00 GiB")

    def test_format_time(self):
        """Test formatting timestamps for request lines."""

        t = UTCDateTime(2020, 1, 1, 12, 30, 15, 123456)
        self.assertEqual(util.format_time(t), "2020-01-01T12:30:15.123")
        self.assertEqual(util.format_time(t, precision=6), "2020-01-01T12:30:15.123456")
        self.assertEqual(util.format_time(t, precision=0), "2020-01-01T12:30:15")

    def test_unique_filename(self):
        """Test that existing files are never overwritten."""

        with tempfile.TemporaryDirectory() as tmpdir:
            fname = pathlib.Path(tmpdir) / "fdsnws.mseed"
            self.assertEqual(util.unique_filename(fname), fname)

            fname.touch()
            self.assertEqual(
                util.unique_filename(fname), pathlib.Path(tmpdir) / "fdsnws.mseed.0"
            )

            (pathlib.Path(tmpdir) / "fdsnws.mseed.0").touch()
            self.assertEqual(
                util.unique_filename(str(fname)),
                pathlib.Path(tmpdir) / "fdsnws.mseed.1",
            )

    def test_timeit(self):
        """Test that the time taken is logged with the name of the function."""

        @util.timeit("info")
        def download():
            return 42

        @util.timeit()
        def parse():
            return 0

        with self.assertLogs(level="INFO") as cm:
            self.assertEqual(download(), 42)
        self.assertEqual(len(cm.records), 1)
        self.assertEqual(cm.records[0].levelno, logging.INFO)
        self.assertRegex(cm.output[0], r"download finished in \d+\.\d{3} s")

        with self.assertLogs(level="DEBUG") as cm:
            self.assertEqual(parse(), 0)
        self.assertEqual(cm.records[0].levelno, logging.DEBUG)
        self.assertIn("parse finished in", cm.output[0])

    def test_logger(self):
        """Test that the log file is named after the request file."""

        with tempfile.TemporaryDirectory() as tmpdir:
            request_file = pathlib.Path(tmpdir) / "anmo.request"
            with mock.patch("logging.basicConfig") as basic_config:
                self.assertIsNone(util.logger(request_file, False))
                handlers = basic_config.call_args.kwargs["handlers"]
                self.assertEqual(len(handlers), 1)

                logfile = util.logger(request_file, True, loglevel="debug")
                handlers = basic_config.call_args.kwargs["handlers"]
                for handler in handlers[:-1]:
                    handler.close()

            self.assertEqual(basic_config.call_args.kwargs["level"], logging.DEBUG)
            self.assertEqual(logfile.parent, pathlib.Path(tmpdir) / "logs")
            self.assertTrue(logfile.name.startswith("anmo_"))
            self.assertEqual(logfile.suffix, ".log")
            self.assertTrue(logfile.exists())
            self.assertEqual(len(handlers), 2)

    def test_exceptions(self):
        """Test the messages of the custom exceptions."""

        e = util.RequestLineException("Cannot parse request line", "IU ANMO")
        self.assertIn("Cannot parse request line", str(e))
        self.assertTrue(e.msg.startswith(" WARNING"))
        self.assertIn("IU ANMO", e.msg)

        e = util.InvalidChunkSizeException(0)
        self.assertIn("got 0", str(e))

        e = util.MissingDataSelectURLException("IRISDMC")
        self.assertIn("IRISDMC", str(e))

        e = util.MissingQueryParameterException("cha")
        self.assertIn("'cha'", str(e))


if __name__ == "__main__":
    unittest.main()
