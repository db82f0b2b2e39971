# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- Event builders
- A clean settings environment per test (no SESSION_/ENGINE_/INPUT_ leakage)
- Sample ELB access-log and event CSV files
"""

import os

import pytest

from weblog.core.models import Event
from weblog.utils.config import get_settings

_SETTINGS_PREFIXES = ("SESSION_", "ENGINE_", "INPUT_")


def elb_line(
    timestamp: str = "2015-07-22T09:00:28.019143Z",
    client: str = "123.242.248.130:54635",
    url: str = "https://paytm.com:443/shop/authresponse?code=f2405b05&state=null",
    backend_time: str = "0.026109",
) -> str:
    """Build one well-formed 15-field ELB access-log line."""
    return (
        f"{timestamp} marketpalce-shop {client} 10.0.6.158:80 0.000022 {backend_time} 0.00002 "
        f'200 200 0 699 "GET {url} HTTP/1.1" '
        f'"Mozilla/5.0 (Windows NT 6.1; rv:39.0) Gecko/20100101 Firefox/39.0" '
        f"ECDHE-RSA-AES128-GCM-SHA256 TLSv1.2"
    )


@pytest.fixture()
def make_elb_line():
    """The elb_line builder, for tests that write their own log lines."""
    return elb_line


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Drop settings env vars and the settings cache around each test."""
    for key in list(os.environ):
        if key.startswith(_SETTINGS_PREFIXES) or key == "LOG_LEVEL":
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def make_events():
    """Build events for one client from a list of minute timestamps.

    URLs default to /page/<index> so every event has a distinct URL.
    """

    def _make(client_id: str, timestamps: list[int], urls: list[str] | None = None) -> list[Event]:
        urls = urls or [f"/page/{i}" for i in range(len(timestamps))]
        return [
            Event(client_id=client_id, timestamp=ts, url=url) for ts, url in zip(timestamps, urls)
        ]

    return _make


@pytest.fixture()
def elb_log(tmp_path):
    """A small ELB log: two clients, one bad line, one unserved request.

    Client 1.1.1.1 (minutes after 09:00): 0, 5, 21, 22 -> sessions of 5 and 1 min
    Client 2.2.2.2: 09:10 only -> one session of 0 min
    """
    lines = [
        elb_line("2015-07-22T09:00:10.000000Z", "1.1.1.1:1000", "https://shop.example/a"),
        elb_line("2015-07-22T09:05:59.000000Z", "1.1.1.1:1001", "https://shop.example/b"),
        elb_line("2015-07-22T09:21:00.000000Z", "1.1.1.1:1002", "https://shop.example/a"),
        elb_line("2015-07-22T09:10:30.000000Z", "2.2.2.2:2000", "https://shop.example/c"),
        elb_line("2015-07-22T09:22:01.000000Z", "1.1.1.1:1003", "https://shop.example/a"),
        elb_line("2015-07-22T09:30:00.000000Z", "3.3.3.3:3000", backend_time="-1"),
        "2015-07-22T09:31:00.000000Z truncated line",
    ]
    path = tmp_path / "sample.log"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture()
def events_csv(tmp_path):
    """A pre-parsed event CSV with one invalid row for client C."""
    rows = [
        "client_id,timestamp,url",
        "A,0,/home",
        "A,5,/cart",
        "A,21,/home",
        "A,22,/checkout",
        "B,100,/home",
        "C,-3,/home",
        "C,10,/about",
    ]
    path = tmp_path / "events.csv"
    path.write_text("\n".join(rows) + "\n", encoding="utf-8")
    return path
