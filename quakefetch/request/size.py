# -*- coding: utf-8 -*-
"""
Module to estimate the volume of waveform data a request line will return.

The estimate assumes 4 bytes per sample (single precision) and an approximate sampling
rate implied by the band code - the first character of the SEED channel code.

:copyright:
    2024–2025, quakefetch developers.
:license:
    GNU General Public License, Version 3
    (https://www.gnu.org/licenses/gpl-3.0.html)

"""

import math


BYTES_PER_SAMPLE = 4

DEFAULT_SPS = 1.0

# Approximate samples per second for each SEED band code
BAND_SPS = {
    "F": 1000.0,
    "G": 1000.0,
    "D": 500.0,
    "C": 250.0,
    "E": 100.0,  # Extremely short period
    "S": 40.0,  # Short period
    "H": 100.0,  # High broadband
    "B": 40.0,  # Broadband
    "M": 5.0,  # Mid period
    "L": 1.0,  # Long period
    "V": 0.1,  # Very long period
    "U": 0.01,  # Ultra long period
    "R": 0.0003,  # Extremely long period
    "P": 0.001,
    "T": 0.001,
    "Q": 0.05,
    "A": 1.0,  # Administrative
    "O": 1.0,  # Opaque
    "W": 1.0,  # Wind and pressure
}


def band_to_sps(channel: str) -> float:
    """
    Approximate samples per second for a channel, from its band code.

    Parameters
    ----------
    channel:
        Channel code (e.g. "BHZ") or just the band code ("B"). Unknown or empty codes
        default to 1 sample per second.

    Returns
    -------
     :
        Approximate sampling rate in Hz.

    """

    if not channel:
        return DEFAULT_SPS

    return BAND_SPS.get(channel[0], DEFAULT_SPS)


def estimate_size(channel: str, duration: float) -> int:
    """
    Estimate the size, in bytes, of a request for a single channel.

    Parameters
    ----------
    channel:
        Channel code; only the band code (first character) is used.
    duration:
        Length of the requested time window, in seconds.

    Returns
    -------
     :
        Estimated size: ceil(sps * duration) * 4 bytes.

    Raises
    ------
    ValueError
        If `duration` is negative.

    """

    if duration < 0:
        raise ValueError(f"Request duration must not be negative, got {duration}.")

    return math.ceil(band_to_sps(channel) * duration) * BYTES_PER_SAMPLE
