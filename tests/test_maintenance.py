"""
OAF Discord Bot - Rollover Detector Tests
=========================================

Tests for noticing the maintenance window, re-checking while it lasts,
and the one-shot resume signal.
"""

import asyncio

import pytest

from oaf.kol.maintenance import RolloverDetector
from oaf.kol.transport import HttpResponse

from conftest import MAINTENANCE_PAGE


class StallingSite:
    """Shows the maintenance notice once, then never answers."""

    def __init__(self) -> None:
        self.stalled = asyncio.Event()
        self.probes = 0

    async def send(self, method, path, **kwargs) -> HttpResponse:
        self.probes += 1
        if self.probes == 1:
            return HttpResponse(200, MAINTENANCE_PAGE)
        self.stalled.set()
        await asyncio.Event().wait()


@pytest.fixture
def detector(fake_kol):
    return RolloverDetector(fake_kol, interval=0.01)


class TestRolloverDetector:
    """Tests for RolloverDetector."""

    @pytest.mark.asyncio
    async def test_up_schedules_nothing(self, detector, fake_kol):
        """Test a normal front page leaves the detector up and idle."""
        assert await detector.check() is False
        assert detector.in_maintenance is False
        assert detector._recheck_task is None
        assert fake_kol.calls[0].path == ""
        assert fake_kol.calls[0].cookie is None

    @pytest.mark.asyncio
    async def test_maintenance_notice_marks_down(self, detector, fake_kol):
        """Test the maintenance notice flips the detector down."""
        fake_kol.maintenance = True
        try:
            assert await detector.check() is True
            assert detector.in_maintenance is True
            assert detector._recheck_task is not None
        finally:
            await detector.stop()

    @pytest.mark.asyncio
    async def test_only_one_recheck_pending(self, detector, fake_kol):
        """Test repeated checks while down share one scheduled re-check."""
        detector.interval = 10
        fake_kol.maintenance = True
        try:
            await detector.check()
            first = detector._recheck_task
            await detector.check()
            await detector.check()

            assert detector._recheck_task is first
            assert len([t for t in asyncio.all_tasks() if t.get_name() == "Rollover Recheck"]) == 1
        finally:
            await detector.stop()

    @pytest.mark.asyncio
    async def test_recheck_notices_end_of_maintenance(self, detector, fake_kol):
        """Test the scheduled re-check brings the detector back up."""
        fake_kol.maintenance = True
        try:
            await detector.check()
            fake_kol.maintenance = False
            await asyncio.sleep(0.1)

            assert detector.in_maintenance is False
            assert detector.pending_resume is True
            assert detector._recheck_task is None
        finally:
            await detector.stop()

    @pytest.mark.asyncio
    async def test_recheck_repeats_while_down(self, detector, fake_kol):
        """Test the detector keeps probing for as long as maintenance lasts."""
        fake_kol.maintenance = True
        try:
            await detector.check()
            await asyncio.sleep(0.1)

            assert detector.in_maintenance is True
            assert len(fake_kol.calls_to("")) > 2
        finally:
            await detector.stop()

    @pytest.mark.asyncio
    async def test_resume_signal_is_one_shot(self, detector, fake_kol):
        """Test the resume signal is consumed exactly once."""
        fake_kol.maintenance = True
        await detector.check()
        fake_kol.maintenance = False
        await detector.check()
        await detector.stop()

        assert detector.consume_resume_signal() is True
        assert detector.consume_resume_signal() is False

    @pytest.mark.asyncio
    async def test_no_resume_signal_without_maintenance(self, detector):
        """Test staying up never raises the resume signal."""
        await detector.check()
        await detector.check()

        assert detector.consume_resume_signal() is False

    @pytest.mark.asyncio
    async def test_transport_error_keeps_state(self, detector, fake_kol):
        """Test an unreachable site neither raises nor changes state."""
        fake_kol.fail_paths.add("")
        assert await detector.check() is False
        assert detector.in_maintenance is False

        fake_kol.fail_paths.clear()
        fake_kol.maintenance = True
        await detector.check()
        fake_kol.fail_paths.add("")
        try:
            assert await detector.check() is True
            assert detector.in_maintenance is True
        finally:
            await detector.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_recheck(self, detector, fake_kol):
        """Test stop cancels the pending re-check and prevents new ones."""
        detector.interval = 10
        fake_kol.maintenance = True
        await detector.check()
        task = detector._recheck_task

        await detector.stop()
        await detector.check()

        assert task.cancelled()
        assert detector._recheck_task is None

    @pytest.mark.asyncio
    async def test_stop_cancels_recheck_in_flight(self):
        """Test stop cancels a re-check whose probe is still waiting on the site."""
        site = StallingSite()
        detector = RolloverDetector(site, interval=0.01)

        assert await detector.check() is True
        await asyncio.wait_for(site.stalled.wait(), timeout=1)
        task = detector._recheck_task

        assert task is not None and not task.done()

        await detector.stop()

        assert task.cancelled()
        assert detector._recheck_task is None
