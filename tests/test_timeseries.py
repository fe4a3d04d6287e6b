import pandas as pd
import pytest

from fdvproc.errors import ParseError, TimestampColumnNotFound, TimestampFormatNotIdentified
from fdvproc.timeseries import (
    find_timestamp_column,
    format_votes,
    identify_timestamp_format,
    materialize,
    mode_interval,
    parse_timestamps,
    regularize,
)


def _stamps(*minutes):
    return pd.Series(pd.Timestamp("2024-01-01") + pd.to_timedelta(list(minutes), unit="min"))


def test_find_timestamp_column():
    assert find_timestamp_column(["Depth", "Date/Time", "Velocity"]) == "Date/Time"
    with pytest.raises(TimestampColumnNotFound):
        find_timestamp_column(["Depth", "Velocity"])


def test_identify_iso_format():
    values = pd.Series(["2024-01-01 00:00:00", "2024-01-01 00:05:00", "garbage"])
    assert identify_timestamp_format(values) == "%Y-%m-%d %H:%M:%S"


def test_format_tie_goes_to_first_listed():
    values = pd.Series(["13/01/2024 10:00", "01/13/2024 10:00"])
    votes = format_votes(values)
    assert votes["%d/%m/%Y %H:%M"] == 1
    assert votes["%m/%d/%Y %H:%M"] == 1
    assert identify_timestamp_format(values) == "%d/%m/%Y %H:%M"


def test_ambiguous_values_vote_once():
    values = pd.Series(["01/02/2024 10:00"] * 3)
    votes = format_votes(values)
    assert votes["%d/%m/%Y %H:%M"] == 3
    assert votes["%m/%d/%Y %H:%M"] == 0


def test_unidentified_format():
    with pytest.raises(TimestampFormatNotIdentified):
        identify_timestamp_format(pd.Series(["soon", "later"]))


def test_mode_interval_ignores_outlier():
    assert mode_interval(_stamps(0, 5, 10, 15, 20, 22)) == pd.Timedelta(minutes=5)


def test_mode_interval_tie_first_seen():
    assert mode_interval(_stamps(0, 5, 10, 20, 30)) == pd.Timedelta(minutes=5)


def test_mode_interval_skips_duplicates():
    assert mode_interval(_stamps(0, 0, 5)) == pd.Timedelta(minutes=5)
    with pytest.raises(ParseError):
        mode_interval(_stamps(0, 0))


def test_regularize_fills_gaps():
    raw = pd.DataFrame({
        "Time": ["2024-01-01 00:00:00", "2024-01-01 00:05:00", "bad", "2024-01-01 00:15:00"],
        "v": ["1", "2", "9", "3"],
    })
    stamps = parse_timestamps(raw["Time"], "%Y-%m-%d %H:%M:%S")
    out, gaps = regularize(raw, "Time", stamps, pd.Timedelta(minutes=5))
    assert list(out.columns) == ["Time", "v"]
    assert len(out) == 4
    assert list(gaps) == [pd.Timestamp("2024-01-01 00:10:00")]

    data = materialize(out, "Time")
    assert data["v"].tolist()[:2] == [1.0, 2.0]
    assert pd.isna(data["v"].iloc[2])
    assert data["v"].iloc[3] == 3.0


def test_regularize_duplicate_keeps_last():
    raw = pd.DataFrame({
        "Time": ["2024-01-01 00:00:00", "2024-01-01 00:05:00", "2024-01-01 00:05:00"],
        "v": ["1", "2", "5"],
    })
    stamps = parse_timestamps(raw["Time"], "%Y-%m-%d %H:%M:%S")
    out, gaps = regularize(raw, "Time", stamps, pd.Timedelta(minutes=5))
    assert len(out) == 2
    assert len(gaps) == 0
    assert materialize(out, "Time")["v"].tolist() == [1.0, 5.0]
