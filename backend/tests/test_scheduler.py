import asyncio

from agenda.models import Slots
from agenda.services.generation_scheduler import run_generation_pass, slot_generation_loop


def test_generation_pass_uses_own_session(make_rule, session_factory, db, config, locker):
    for weekday in range(7):
        make_rule(day_of_week=weekday, start_time="08:00", end_time="09:00", step_minutes=60)

    summary = run_generation_pass(session_factory, 7, config=config, locker=locker)

    assert summary.days_with_slots == 7
    assert summary.slots_created == 7
    assert db.query(Slots).count() == 7


def count_slots(session_factory):
    with session_factory() as session:
        return session.query(Slots).count()


def test_generation_loop_runs_until_cancelled(make_rule, session_factory, config, locker):
    for weekday in range(7):
        make_rule(day_of_week=weekday, start_time="08:00", end_time="09:00", step_minutes=60)

    async def run():
        task = asyncio.create_task(slot_generation_loop(session_factory, 3, 3600, config=config, locker=locker))
        for _ in range(200):
            await asyncio.sleep(0.01)
            if count_slots(session_factory) == 3:
                break
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return task

    task = asyncio.run(run())

    assert task.done()
    assert count_slots(session_factory) == 3
