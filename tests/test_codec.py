# -*- coding: utf-8 -*-
"""
Test script containing unit tests covering the decoding and writing of waveform data
in quakefetch.io.codec.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

import io
import pathlib
import tempfile
import unittest

import numpy as np
from obspy import Stream, Trace, UTCDateTime, read

from quakefetch.io import WaveformCodec


def broadband_stream():
    """Create a stream of one broadband channel, split into two contiguous traces."""

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
    trace1 = Trace(data=data[:400], header=dict(header))
    header["starttime"] = UTCDateTime(2020, 1, 1, 0, 0, 10)
    trace2 = Trace(data=data[400:], header=dict(header))

    return Stream(traces=[trace1, trace2])


def to_mseed(stream):
    buf = io.BytesIO()
    stream.write(buf, format="MSEED")

    return buf.getvalue()


class TestWaveformCodec(unittest.TestCase):
    """Suite of tests for decoding miniSEED data and writing waveform files."""

    def test_unpack(self):
        st = broadband_stream()
        codec = WaveformCodec()

        stream = codec.unpack(None, to_mseed(Stream(st[0])))
        self.assertEqual(len(stream), 1)
        stream = codec.unpack(stream, to_mseed(Stream(st[1])))
        self.assertEqual(len(stream), 2)

        print("\t1: Assert pieces of a channel are merged...")
        merged = codec.collect(stream)
        self.assertEqual(len(merged), 1)
        self.assertEqual(merged[0].stats.npts, 800)
        data = np.concatenate([st[0].data, st[1].data])
        self.assertTrue((merged[0].data == data).all())
        print("\t   ...passed!")

    def test_collect(self):
        stream = broadband_stream()

        self.assertIsNone(WaveformCodec().collect(None))
        self.assertEqual(len(WaveformCodec(merge=False).collect(stream)), 2)
        self.assertEqual(len(WaveformCodec(merge=True).collect(stream)), 1)

    def test_write(self):
        stream = WaveformCodec().collect(broadband_stream())

        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "sac"
            written = WaveformCodec().write(stream, path)

            fname = path / "IU.ANMO.00.BHZ.2020.001.00.00.00.SAC"
            self.assertEqual(written, [fname])
            st = read(str(fname))
            self.assertEqual(st[0].stats.npts, 800)
            self.assertEqual(st[0].stats.starttime, UTCDateTime(2020, 1, 1))

            # Existing files are never overwritten
            written = WaveformCodec().write(stream, path)
            self.assertEqual(written, [fname.with_name(f"{fname.name}.0")])

            written = WaveformCodec().write(stream, path, file_format="mseed")
            self.assertEqual(
                written, [path / "IU.ANMO.00.BHZ.2020.001.00.00.00.mseed"]
            )


if __name__ == "__main__":
    unittest.main()
