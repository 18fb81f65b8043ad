from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from clinic.core.clock import FixedClock
from clinic.core.errors import InvalidFormat, InvalidValue, MissingFields, PastDate
from clinic.core.validation import (
    as_utc,
    parse_calendar_date,
    parse_clock_time,
    require_fields,
    require_positive_int,
    require_positive_money,
    require_positive_number,
    to_money,
)
from clinic.modules.appointments.service import TimeWindow, compute_window, windows_overlap
from clinic.modules.billing.service import format_invoice_number

CLOCK = FixedClock(datetime(2030, 1, 15, 8, 0, tzinfo=timezone.utc))


def test_parse_calendar_date_ok():
    assert parse_calendar_date("2030-02-28") == date(2030, 2, 28)


@pytest.mark.parametrize("value", ["2030-02-30", "30-01-2030", "2030-1-5", "2030-01-05\n", None, 20300105])
def test_parse_calendar_date_rejects(value):
    with pytest.raises(InvalidFormat) as exc:
        parse_calendar_date(value)
    assert exc.value.message == "Invalid date, format must be yyyy-mm-dd"


def test_parse_clock_time_ok():
    assert parse_clock_time("23:59") == time(23, 59)


@pytest.mark.parametrize("value", ["24:00", "12:60", "9:00", "09h00", ""])
def test_parse_clock_time_rejects(value):
    with pytest.raises(InvalidFormat):
        parse_clock_time(value)


def test_as_utc_treats_naive_as_utc():
    naive = datetime(2030, 1, 1, 9, 0)
    assert as_utc(naive) == datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)


def test_require_positive_number_accepts_json_numbers():
    assert require_positive_number(12.5, "montant") == Decimal("12.5")
    assert require_positive_number(3, "montant") == Decimal("3")


@pytest.mark.parametrize("value", ["50", True, 0, -1, float("nan"), float("inf"), None])
def test_require_positive_number_rejects(value):
    with pytest.raises(InvalidValue) as exc:
        require_positive_number(value, "montant")
    assert exc.value.message == "montant must be a number greater than 0"


def test_require_positive_int_rejects_fractions():
    assert require_positive_int(30, "duree") == 30
    with pytest.raises(InvalidValue):
        require_positive_int(1.5, "duree")


def test_require_fields_lists_missing():
    with pytest.raises(MissingFields) as exc:
        require_fields({"a": 1, "b": "", "c": None}, ("a", "b", "c"))
    assert exc.value.fields == ["b", "c"]
    assert exc.value.message == "All fields are required"


def test_to_money_rounds_to_cents():
    assert to_money(Decimal("10.005")) == Decimal("10.01")
    assert to_money(None) == Decimal("0.00")


def test_windows_overlap_half_open():
    t = datetime(2030, 1, 20, 9, 0, tzinfo=timezone.utc)
    hour = timedelta(hours=1)
    assert windows_overlap(t, t + hour, t + timedelta(minutes=30), t + 2 * hour)
    assert not windows_overlap(t, t + hour, t + hour, t + 2 * hour)
    assert windows_overlap(t, t + hour, t, t + hour)


def test_compute_window():
    window = compute_window("2030-01-20", "09:00", 45, CLOCK)
    assert window == TimeWindow(
        start=datetime(2030, 1, 20, 9, 0, tzinfo=timezone.utc),
        end=datetime(2030, 1, 20, 9, 45, tzinfo=timezone.utc),
    )
    assert window.duration_minutes == 45


def test_compute_window_past_date():
    with pytest.raises(PastDate):
        compute_window("2030-01-15", "07:59", 30, CLOCK)


def test_compute_window_starting_now_is_allowed():
    window = compute_window("2030-01-15", "08:00", 30, CLOCK)
    assert window.start == CLOCK.now()


def test_compute_window_checks_format_before_duration():
    with pytest.raises(InvalidFormat):
        compute_window("2030-13-01", "09:00", 0, CLOCK)
    with pytest.raises(InvalidValue):
        compute_window("2030-01-20", "09:00", 0, CLOCK)


def test_format_invoice_number():
    assert format_invoice_number("203001", 7) == "INV-203001-0007"
    assert format_invoice_number("203001", 12345, prefix="FAC") == "FAC-203001-12345"


def test_require_positive_money_rounds_then_checks():
    assert require_positive_money(19.999, "montant") == Decimal("20.00")
    with pytest.raises(InvalidValue) as exc:
        require_positive_money(0.004, "montant")
    assert exc.value.message == "montant must be a number greater than 0"


@pytest.mark.parametrize("value", [1e10, 1e30, Decimal("9" * 40)])
def test_require_positive_money_rejects_out_of_range(value):
    with pytest.raises(InvalidValue):
        require_positive_money(value, "prix")


def test_to_money_rejects_values_beyond_decimal_precision():
    with pytest.raises(InvalidValue):
        to_money(Decimal("1e30"))
