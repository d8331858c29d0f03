import asyncio
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio

from pulse_admin.errors import StoreError
from pulse_admin.models.reflection_models import CreateReflectionRequest, ReflectionRecord
from pulse_admin.models.result_models import ErrorCode
from pulse_admin.services.reflection_service import ReflectionService, merge_reflections


def make_request(day: date, text: str = "What did you learn today?", **kwargs) -> CreateReflectionRequest:
    return CreateReflectionRequest(date=day, text=text, **kwargs)


@pytest_asyncio.fixture
async def three_days(reflection_service):
    await reflection_service.create(make_request(date(2025, 1, 1), "New year"))
    await reflection_service.create(make_request(date(2025, 1, 2), "Challenge day", challenge_id="c1"))
    await reflection_service.create(make_request(date(2025, 1, 3), "Third day"))


@pytest.mark.asyncio
async def test_create_stores_record_at_computed_path(reflection_service, store):
    result = await reflection_service.create(
        make_request(date(2025, 1, 3), "  Breathe  ", challenge_id="abc-def-123", challenge_name="Spring Shred")
    )

    assert result.ok
    assert result.value.id == "01-03-2025-abc-def-123"
    stored = store.documents["reflections/01-03-2025/challenges/abc-def-123"]
    assert stored["text"] == "Breathe"
    assert stored["challenge_name"] == "Spring Shred"
    assert stored["date"] == datetime(2025, 1, 3, tzinfo=timezone.utc)
    assert "exercise_id" not in stored
    assert "exercise_name" not in stored
    assert store.documents["reflections/01-03-2025"]["date_key"] == "01-03-2025"


@pytest.mark.asyncio
async def test_create_rejects_empty_text(reflection_service, store):
    result = await reflection_service.create(make_request(date(2025, 1, 3), "   "))

    assert not result.ok
    assert result.error.code == ErrorCode.VALIDATION_ERROR
    assert store.documents == {}


@pytest.mark.asyncio
async def test_create_rejects_challenge_id_with_slash(reflection_service, store):
    result = await reflection_service.create(make_request(date(2025, 1, 3), challenge_id="a/b"))

    assert not result.ok
    assert result.error.code == ErrorCode.VALIDATION_ERROR
    assert store.documents == {}


@pytest.mark.asyncio
async def test_create_replaces_slot_and_keeps_created_at(reflection_service, store):
    first = await reflection_service.create(make_request(date(2025, 1, 3), "First"))
    second = await reflection_service.create(make_request(date(2025, 1, 3), "Second"))

    assert second.value.id == first.value.id
    assert second.value.text == "Second"
    assert second.value.created_at == first.value.created_at
    assert second.value.updated_at >= first.value.updated_at
    assert len([p for p in store.documents if p.startswith("reflections/01-03-2025/")]) == 1


@pytest.mark.asyncio
async def test_general_and_challenge_reflections_share_a_day(reflection_service):
    await reflection_service.create(make_request(date(2025, 1, 3), "General"))
    await reflection_service.create(make_request(date(2025, 1, 3), "Challenge", challenge_id="c1"))

    result = await reflection_service.list_for_date("01-03-2025")

    assert [r.id for r in result.value] == ["01-03-2025-general", "01-03-2025-c1"]


@pytest.mark.asyncio
async def test_create_reports_store_failure(reflection_service, store):
    store.failing_prefixes = ["reflections"]

    result = await reflection_service.create(make_request(date(2025, 1, 3)))

    assert not result.ok
    assert result.error.code == ErrorCode.STORE_ERROR


@pytest.mark.asyncio
async def test_get_returns_hydrated_record(reflection_service):
    await reflection_service.create(make_request(date(2025, 1, 3), "Hello", exercise_id="ex-1", exercise_name="Squat"))

    result = await reflection_service.get("01-03-2025-general")

    assert result.ok
    assert isinstance(result.value, ReflectionRecord)
    assert result.value.text == "Hello"
    assert result.value.exercise_name == "Squat"
    assert result.value.context_key == "general"


@pytest.mark.asyncio
async def test_get_missing_returns_none(reflection_service):
    result = await reflection_service.get("01-03-2025-general")

    assert result.ok
    assert result.value is None


@pytest.mark.asyncio
async def test_get_and_delete_treat_malformed_id_as_not_found(reflection_service):
    get_result = await reflection_service.get("12-31")
    delete_result = await reflection_service.delete("12-31")

    assert get_result.ok and get_result.value is None
    assert delete_result.ok and delete_result.value is False


@pytest.mark.asyncio
async def test_delete_is_idempotent(reflection_service):
    await reflection_service.create(make_request(date(2025, 1, 3)))

    first = await reflection_service.delete("01-03-2025-general")
    second = await reflection_service.delete("01-03-2025-general")

    assert first.ok and first.value is True
    assert second.ok and second.value is False


@pytest.mark.asyncio
async def test_delete_keeps_partition_marker(reflection_service, store):
    await reflection_service.create(make_request(date(2025, 1, 3), "General"))

    await reflection_service.delete("01-03-2025-general")

    assert "reflections/01-03-2025" in store.documents
    assert (await reflection_service.list(5)).value == []


@pytest.mark.asyncio
@pytest.mark.parametrize("head_start", [0, 1, 2, 3, 4])
async def test_delete_racing_create_on_same_day_keeps_new_record(yielding_store, head_start):
    service = ReflectionService(store=yielding_store)
    await service.create(make_request(date(2025, 1, 3), "General"))

    async def create_challenge_reflection():
        for _ in range(head_start):
            await asyncio.sleep(0)
        return await service.create(make_request(date(2025, 1, 3), "Challenge", challenge_id="c1"))

    deleted, created = await asyncio.gather(service.delete("01-03-2025-general"), create_challenge_reflection())
    listed = await service.list(5)

    assert deleted.value is True
    assert created.ok
    assert [r.id for r in listed.value] == ["01-03-2025-c1"]


@pytest.mark.asyncio
async def test_list_returns_most_recent_records(reflection_service, three_days):
    result = await reflection_service.list(2)

    assert result.ok
    assert [r.id for r in result.value] == ["01-03-2025-general", "01-02-2025-c1"]


@pytest.mark.asyncio
async def test_list_truncates_to_limit(reflection_service, three_days):
    result = await reflection_service.list(1)

    assert [r.id for r in result.value] == ["01-03-2025-general"]


@pytest.mark.asyncio
async def test_list_orders_across_year_boundary(reflection_service):
    await reflection_service.create(make_request(date(2024, 12, 31), "Old year"))
    await reflection_service.create(make_request(date(2025, 1, 1), "New year"))

    result = await reflection_service.list(1)

    assert [r.id for r in result.value] == ["01-01-2025-general"]


@pytest.mark.asyncio
async def test_list_skips_failing_partition(reflection_service, store, three_days):
    store.failing_prefixes = ["reflections/01-02-2025/"]

    result = await reflection_service.list(3)

    assert result.ok
    assert [r.id for r in result.value] == ["01-03-2025-general", "01-01-2025-general"]


@pytest.mark.asyncio
async def test_list_reads_past_emptied_partitions(reflection_service, three_days):
    await reflection_service.delete("01-03-2025-general")

    result = await reflection_service.list(2)

    assert [r.id for r in result.value] == ["01-02-2025-c1", "01-01-2025-general"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failing",
    [
        ["reflections/01-03-2025/general"],
        ["reflections/01-03-2025/challenges"],
        ["reflections/01-03-2025/general", "reflections/01-03-2025/challenges"],
    ],
)
async def test_partition_read_failure_surfaces_as_store_error(reflection_service, store, three_days, failing):
    store.failing_prefixes = failing

    with pytest.raises(StoreError):
        await reflection_service.read_partition_contents("01-03-2025")
    result = await reflection_service.list_for_date("01-03-2025")

    assert result.error.code == ErrorCode.STORE_ERROR


@pytest.mark.asyncio
async def test_list_fails_when_partitions_cannot_be_listed(reflection_service, store, three_days):
    store.failing_prefixes = ["reflections"]

    result = await reflection_service.list(3)

    assert not result.ok
    assert result.error.code == ErrorCode.STORE_ERROR


@pytest.mark.asyncio
async def test_list_rejects_non_positive_limit(reflection_service):
    result = await reflection_service.list(0)

    assert result.error.code == ErrorCode.VALIDATION_ERROR


@pytest.mark.asyncio
async def test_list_for_date_rejects_bad_date_key(reflection_service):
    result = await reflection_service.list_for_date("2025-01-03")

    assert result.error.code == ErrorCode.MALFORMED_ID


def _record(date_key: str, context_key: str, day: datetime) -> ReflectionRecord:
    return ReflectionRecord(
        id=f"{date_key}-{context_key}",
        date_key=date_key,
        context_key=context_key,
        date=day,
        text="t",
        created_at=day,
        updated_at=day,
    )


def test_merge_reflections_sorts_by_date_and_keeps_partition_order():
    jan1 = datetime(2025, 1, 1, tzinfo=timezone.utc)
    jan2 = datetime(2025, 1, 2, tzinfo=timezone.utc)
    batches = [
        [_record("01-01-2025", "general", jan1)],
        [_record("01-02-2025", "general", jan2), _record("01-02-2025", "c1", jan2)],
    ]

    merged = merge_reflections(batches, 10)

    assert [r.id for r in merged] == ["01-02-2025-general", "01-02-2025-c1", "01-01-2025-general"]
    assert len(merge_reflections(batches, 2)) == 2
    assert merge_reflections([], 5) == []
