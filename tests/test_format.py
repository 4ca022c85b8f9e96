"""Tests for hostwatch.format — pure unit conversions."""

from __future__ import annotations

import math

import pytest

from hostwatch.format import (
    format_bandwidth,
    format_bytes,
    format_uptime,
    parse_throttling_status,
)


# ── uptime ────────────────────────────────────────────


@pytest.mark.parametrize(
    "seconds,expected",
    [
        (0, "0s"),
        (59, "59s"),
        (65, "1m 5s"),
        (3600, "1h 0m"),
        (3725, "1h 2m"),
        (86400, "1d 0h 0m"),
        (90061, "1d 1h 1m"),
        (59.9, "59s"),
    ],
)
def test_format_uptime(seconds, expected):
    assert format_uptime(seconds) == expected


# ── bandwidth ─────────────────────────────────────────


@pytest.mark.parametrize(
    "bps,expected",
    [
        (-10, "0.00 bps"),
        (0, "0.00 bps"),
        (999, "999.00 bps"),
        (1_000, "1.00 Kbps"),
        (1_500, "1.50 Kbps"),
        (1_000_000, "1.00 Mbps"),
        (100_000, "100.00 Kbps"),
        (1_000_000_000, "1.00 Gbps"),
        (2_345_678_901, "2.35 Gbps"),
    ],
)
def test_format_bandwidth(bps, expected):
    assert format_bandwidth(bps) == expected


def test_format_bandwidth_non_finite():
    assert format_bandwidth(math.nan) == "0.00 bps"
    assert format_bandwidth(math.inf) == "0.00 bps"


# ── bytes ─────────────────────────────────────────────


@pytest.mark.parametrize(
    "num,expected",
    [
        (-1, "0 B"),
        (0, "0 B"),
        (512, "512 B"),
        (1024, "1.0 KB"),
        (1536, "1.5 KB"),
        (1024 ** 3, "1.0 GB"),
        (int(29.1 * 1024 ** 3), "29.1 GB"),
        (2 * 1024 ** 4, "2.0 TB"),
    ],
)
def test_format_bytes(num, expected):
    assert format_bytes(num) == expected


# ── throttling ────────────────────────────────────────


def test_throttling_zero_is_normal():
    result = parse_throttling_status("0x0")
    assert result.status == "Normal"
    assert not any(result.flags.model_dump().values())


def test_throttling_undervoltage():
    result = parse_throttling_status("0x1")
    assert "Undervoltage" in result.status
    assert result.flags.under_voltage is True
    assert result.flags.under_voltage_occurred is False


def test_throttling_throttled():
    result = parse_throttling_status("0x4")
    assert result.status == "Throttled"
    assert result.flags.throttled is True


def test_throttling_combined_fixed_order():
    result = parse_throttling_status("0xF")
    assert result.status == "Undervoltage, Frequency Capped, Throttled, Soft Temp Limit"


def test_throttling_occurred_bits_do_not_affect_status():
    result = parse_throttling_status("0x50000")
    assert result.status == "Normal"
    assert result.flags.under_voltage_occurred is True
    assert result.flags.throttled_occurred is True
    assert result.flags.frequency_capped_occurred is False


def test_throttling_accepts_raw_vcgencmd_output():
    result = parse_throttling_status("throttled=0x50005")
    assert result.status == "Undervoltage, Throttled"
    assert result.flags.soft_temp_limit is False


@pytest.mark.parametrize("raw", [None, "", "garbage"])
def test_throttling_unparsable_is_normal(raw):
    assert parse_throttling_status(raw).status == "Normal"


def test_throttling_accepts_int():
    assert parse_throttling_status(0x2).status == "Frequency Capped"
