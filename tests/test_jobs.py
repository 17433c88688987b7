import asyncio

from dealfinder import jobs


def test_crashing_run_is_contained(make_settings, monkeypatch):
    async def boom(settings):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(jobs, "run_once", boom)
    assert asyncio.run(jobs.run_deal_search(make_settings(), reason="scheduled")) is None


def test_background_run_is_tracked(make_settings, monkeypatch):
    async def fake_run(settings):
        return "report"

    monkeypatch.setattr(jobs, "run_once", fake_run)

    async def scenario():
        task = jobs.start_background_run(make_settings(), reason="manual")
        assert task in jobs._background_runs
        result = await task
        await asyncio.sleep(0)
        return task, result

    task, result = asyncio.run(scenario())
    assert result == "report"
    assert task not in jobs._background_runs
