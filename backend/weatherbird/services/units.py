"""Unit conversions.

Provider adapters use these at the normalization boundary so everything
downstream is metric (C, m/s, hPa, mm). The imperial helpers are for
consumer-facing output only.
"""


def f_to_c(fahrenheit: float | None) -> float | None:
    if fahrenheit is None:
        return None
    return (fahrenheit - 32) * 5 / 9


def c_to_f(celsius: float | None) -> float | None:
    if celsius is None:
        return None
    return celsius * 9 / 5 + 32


def kmh_to_ms(kmh: float | None) -> float | None:
    if kmh is None:
        return None
    return kmh / 3.6


def mph_to_ms(mph: float | None) -> float | None:
    if mph is None:
        return None
    return mph * 0.44704


def ms_to_mph(ms: float | None) -> float | None:
    if ms is None:
        return None
    return ms / 0.44704


def pa_to_hpa(pascals: float | None) -> float | None:
    if pascals is None:
        return None
    return pascals / 100


def inhg_to_hpa(inches: float | None) -> float | None:
    if inches is None:
        return None
    return inches * 33.8639


def mm_to_in(mm: float | None) -> float | None:
    if mm is None:
        return None
    return mm / 25.4


def in_to_mm(inches: float | None) -> float | None:
    if inches is None:
        return None
    return inches * 25.4


def cm_to_mm(cm: float | None) -> float | None:
    if cm is None:
        return None
    return cm * 10


def km_to_mi(km: float) -> float:
    return km / 1.609344
