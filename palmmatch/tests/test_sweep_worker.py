import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from palmmatch.core.errors import DurableStoreUnavailable
from palmmatch.features.codes.service import CodeBroker, get_code_broker, set_code_broker
from palmmatch.workers import sweep_expired_codes


@pytest.fixture(autouse=True)
def keep_logging(monkeypatch):
    # the worker installs a stdout handler; leave pytest's capture alone
    monkeypatch.setattr(sweep_expired_codes, "configure_logging", lambda env: None)


def test_main_sweeps_as_of_given_time(alice_snapshot, capsys):
    issued_at = datetime(2025, 1, 1, tzinfo=timezone.utc)
    asyncio.run(get_code_broker().issue(alice_snapshot, now=issued_at))

    assert sweep_expired_codes.main(["--now", "2025-01-15T00:00:00"]) == 0
    assert "'deleted': 0" in capsys.readouterr().out

    assert sweep_expired_codes.main(["--now", (issued_at + timedelta(days=30)).isoformat()]) == 0
    assert "'deleted': 1" in capsys.readouterr().out


def test_parse_now_accepts_zulu():
    assert sweep_expired_codes._parse_now("2025-03-01T00:00:00Z") == datetime(2025, 3, 1, tzinfo=timezone.utc)
    assert sweep_expired_codes._parse_now(None) is None


def test_main_survives_store_outage(capsys):
    class DownStore:
        async def delete_expired(self, now):
            raise DurableStoreUnavailable("down")

    set_code_broker(CodeBroker(DownStore()))
    assert sweep_expired_codes.main([]) == 0
    assert "'deleted': 0" in capsys.readouterr().out
