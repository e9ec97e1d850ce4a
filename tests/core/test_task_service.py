"""
Tests for Task Service.
"""

import pytest
from datetime import date


@pytest.fixture
async def created(service, sample_form):
    """A task created through the service."""
    result = await service.create(sample_form)
    return result.task


class TestTaskServiceCreate:
    """Tests for TaskService.create()."""

    @pytest.mark.asyncio
    async def test_create_task(self, service, backend, sample_form):
        """Test creating a task from form data."""
        result = await service.create(sample_form)

        assert result.ok is True
        task = result.task
        assert task.title == "Write release notes"
        assert task.status == "Not Started"
        assert task.completed_at is None
        assert task.created_at == task.updated_at
        assert task.due_date == date(2024, 6, 21)
        assert service.store.get(task.id) == task

        # Sent to the backend with the same ID
        assert backend.requests[0].id == task.id
        assert [t.id for t in await backend.list_tasks()] == [task.id]

    @pytest.mark.asyncio
    async def test_create_assigns_unique_ids(self, service, sample_form):
        first = await service.create(sample_form)
        second = await service.create(sample_form)

        assert first.task.id != second.task.id
        assert len(service.store) == 2

    @pytest.mark.asyncio
    async def test_create_invalid_inserts_nothing(self, service, backend):
        """Short title and description are both reported."""
        from taskboard.errors import ValidationError
        from taskboard.models import TaskFormData

        form = TaskFormData(title="ab", description="short", due_date="2024-06-21")

        with pytest.raises(ValidationError) as exc:
            await service.create(form)

        assert "title" in exc.value.fields
        assert "description" in exc.value.fields
        assert service.store.snapshot() == ()
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_create_rolls_back_on_backend_failure(self, service, backend, sample_form):
        snapshots = []
        service.store.subscribe(snapshots.append)
        backend.fail_next()

        result = await service.create(sample_form)

        assert result.ok is False
        assert result.error.operation == "create"
        assert "backend unavailable" in str(result.error)
        assert service.store.snapshot() == ()
        # Optimistic insert, then the rollback
        assert [len(s) for s in snapshots] == [1, 0]

    @pytest.mark.asyncio
    async def test_unwrap_raises_sync_failure(self, service, backend, sample_form):
        from taskboard.errors import SyncFailure

        backend.fail_next()
        result = await service.create(sample_form)

        with pytest.raises(SyncFailure):
            result.unwrap()


class TestTaskServiceGet:
    """Tests for TaskService.get()."""

    @pytest.mark.asyncio
    async def test_get_existing_task(self, service, created):
        fetched = service.get(created.id)

        assert fetched.id == created.id

    def test_get_nonexistent_task(self, service):
        from taskboard.errors import NotFoundError

        with pytest.raises(NotFoundError) as exc:
            service.get("nonexistent-id")

        assert exc.value.task_id == "nonexistent-id"


class TestTaskServiceUpdate:
    """Tests for TaskService.update()."""

    @pytest.mark.asyncio
    async def test_update_title(self, service, created):
        result = await service.update(created.id, title="Updated title")

        assert result.ok is True
        assert result.task.title == "Updated title"
        assert result.task.updated_at > created.updated_at
        assert result.task.created_at == created.created_at

    @pytest.mark.asyncio
    async def test_update_multiple_fields(self, service, created):
        result = await service.update(
            created.id,
            description="A brand new description",
            priority="Low",
            due_date="2024-07-01",
            tags=["later", " "],
        )

        task = result.task
        assert task.description == "A brand new description"
        assert task.priority == "Low"
        assert task.due_date == date(2024, 7, 1)
        assert task.tags == ["later"]

    @pytest.mark.asyncio
    async def test_update_status_to_completed_sets_completed_at(self, service, created):
        result = await service.update(created.id, status="Completed")

        assert result.task.status == "Completed"
        assert result.task.completed_at is not None

    @pytest.mark.asyncio
    async def test_update_status_away_from_completed_clears_completed_at(self, service, created):
        await service.update(created.id, status="Completed")
        result = await service.update(created.id, status="Not Started")

        assert result.task.completed_at is None

    @pytest.mark.asyncio
    async def test_completed_to_completed_keeps_timestamp(self, service, created):
        first = await service.update(created.id, status="Completed")
        second = await service.update(created.id, status="Completed", title="Renamed")

        assert second.task.completed_at == first.task.completed_at

    @pytest.mark.asyncio
    async def test_update_nonexistent_leaves_store_unchanged(self, service, created):
        from taskboard.errors import NotFoundError

        before = service.store.snapshot()

        with pytest.raises(NotFoundError):
            await service.update("missing-id", title="New")

        assert service.store.snapshot() == before

    @pytest.mark.asyncio
    async def test_update_invalid_values(self, service, created):
        from taskboard.errors import ValidationError

        with pytest.raises(ValidationError) as exc:
            await service.update(created.id, status="Done", priority="Urgent", title="  ")

        assert set(exc.value.fields) == {"status", "priority", "title"}

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, service, created):
        from taskboard.errors import ValidationError

        with pytest.raises(ValidationError) as exc:
            await service.update(created.id, id="other")

        assert exc.value.fields == ["id"]

    @pytest.mark.asyncio
    async def test_update_nothing_is_a_no_op(self, service, created, backend):
        sent = len(backend.requests)

        result = await service.update(created.id)

        assert result.ok is True
        assert result.task == created
        assert len(backend.requests) == sent

    @pytest.mark.asyncio
    async def test_update_sends_changes_to_backend(self, service, created, backend):
        result = await service.update(created.id, status="Completed")

        request = backend.requests[-1]
        assert request.id == created.id
        assert request.changes["status"] == "Completed"
        assert request.changes["completed_at"] == result.task.completed_at
        assert request.changes["updated_at"] == result.task.updated_at

    @pytest.mark.asyncio
    async def test_update_rolls_back_on_backend_failure(self, service, created, backend):
        backend.fail_next()

        result = await service.update(created.id, title="Never saved")

        assert result.ok is False
        assert result.task == created
        assert service.get(created.id) == created

    @pytest.mark.asyncio
    async def test_update_non_text_title(self, service, created, backend):
        from taskboard.errors import ValidationError

        sent = len(backend.requests)
        with pytest.raises(ValidationError) as exc:
            await service.update(created.id, title=42)

        assert exc.value.fields == ["title"]
        assert len(backend.requests) == sent

    @pytest.mark.asyncio
    async def test_update_tags_must_be_a_list(self, service, created):
        from taskboard.errors import ValidationError

        with pytest.raises(ValidationError) as exc:
            await service.update(created.id, tags="urgent")

        assert exc.value.fields == ["tags"]
        assert service.get(created.id).tags == ["docs", "release"]


class TestOverlappingMutations:
    """A failed sync only undoes its own fields."""

    @pytest.fixture
    def slow_service(self, store):
        import asyncio

        from taskboard.backends.memory import MemoryTaskBackend
        from taskboard.errors import BackendError
        from taskboard.services.tasks import TaskService

        class SlowFailingBackend(MemoryTaskBackend):
            """Waits before rejecting any request that renames a task."""

            async def update_task(self, request):
                if "title" in request.changes:
                    await asyncio.sleep(0.01)
                    raise BackendError("backend unavailable")
                return await super().update_task(request)

            async def delete_task(self, task_id, deleted_at=None):
                await asyncio.sleep(0.01)
                raise BackendError("backend unavailable")

        return TaskService(store=store, backend=SlowFailingBackend())

    @pytest.mark.asyncio
    async def test_failed_update_keeps_concurrent_change(self, slow_service, sample_form):
        import asyncio

        created = (await slow_service.create(sample_form)).task

        failed, succeeded = await asyncio.gather(
            slow_service.update(created.id, title="Lost title"),
            slow_service.update(created.id, priority="Low"),
        )

        assert failed.ok is False
        assert succeeded.ok is True
        local = slow_service.get(created.id)
        remote = (await slow_service.backend.list_tasks())[0]
        assert local.title == created.title
        assert local.priority == remote.priority == "Low"
        assert local.updated_at == succeeded.task.updated_at
        assert failed.task == local

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_concurrent_change(self, slow_service, sample_form):
        import asyncio

        created = (await slow_service.create(sample_form)).task

        failed, succeeded = await asyncio.gather(
            slow_service.delete(created.id),
            slow_service.update(created.id, priority="Low"),
        )

        assert failed.ok is False
        assert succeeded.ok is True
        local = slow_service.get(created.id)
        assert local.is_deleted is False
        assert local.priority == "Low"


class TestTaskServiceDelete:
    """Tests for TaskService.delete()."""

    @pytest.mark.asyncio
    async def test_soft_delete(self, service, created):
        result = await service.delete(created.id)

        assert result.ok is True
        task = service.get(created.id)
        assert task.is_deleted is True
        assert task.updated_at > created.updated_at
        # Still in the store
        assert len(service.store) == 1

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, service, created, backend):
        await service.delete(created.id)
        once = service.store.snapshot()
        sent = len(backend.requests)

        result = await service.delete(created.id)

        assert result.ok is True
        assert service.store.snapshot() == once
        assert len(backend.requests) == sent

    @pytest.mark.asyncio
    async def test_delete_nonexistent(self, service):
        from taskboard.errors import NotFoundError

        with pytest.raises(NotFoundError):
            await service.delete("nonexistent")

    @pytest.mark.asyncio
    async def test_delete_rolls_back_on_backend_failure(self, service, created, backend):
        backend.fail_next()

        result = await service.delete(created.id)

        assert result.ok is False
        assert result.error.operation == "delete"
        assert service.get(created.id).is_deleted is False
        assert service.get(created.id).updated_at == created.updated_at

    @pytest.mark.asyncio
    async def test_delete_sends_local_timestamp(self, service, created, backend):
        result = await service.delete(created.id)

        stored = (await backend.list_tasks())[0]
        assert stored.is_deleted is True
        assert stored.updated_at == result.task.updated_at


class TestTaskServiceCycleStatus:
    """Tests for TaskService.cycle_status()."""

    @pytest.mark.asyncio
    async def test_full_cycle(self, service, created):
        first = await service.cycle_status(created.id)
        assert first.task.status == "In Progress"
        assert first.task.completed_at is None

        second = await service.cycle_status(created.id)
        assert second.task.status == "Completed"
        assert second.task.completed_at is not None

        third = await service.cycle_status(created.id)
        assert third.task.status == "Not Started"
        assert third.task.completed_at is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("start", ["Not Started", "In Progress", "Completed"])
    async def test_three_cycles_return_to_start(self, service, created, start):
        await service.update(created.id, status=start)
        original = service.get(created.id)

        for _ in range(3):
            result = await service.cycle_status(created.id)
            assert (result.task.completed_at is not None) == (result.task.status == "Completed")

        assert result.task.status == original.status

    @pytest.mark.asyncio
    async def test_cycle_nonexistent(self, service):
        from taskboard.errors import NotFoundError

        with pytest.raises(NotFoundError):
            await service.cycle_status("nonexistent")

    @pytest.mark.asyncio
    async def test_cycle_rolls_back_on_backend_failure(self, service, created, backend):
        backend.fail_next()

        result = await service.cycle_status(created.id)

        assert result.ok is False
        assert service.get(created.id).status == "Not Started"


class TestTaskServiceHelpers:
    """Tests for TaskService helper methods."""

    @pytest.mark.asyncio
    async def test_restore(self, service, created):
        await service.update(created.id, status="Completed")

        result = await service.restore(created.id)

        assert result.task.status == "In Progress"
        assert result.task.completed_at is None

    @pytest.mark.asyncio
    async def test_set_color(self, service, created):
        result = await service.set_color(created.id, "#E3F2FD")

        assert result.task.background_color == "#E3F2FD"

    @pytest.mark.asyncio
    async def test_set_invalid_color(self, service, created):
        from taskboard.errors import ValidationError

        with pytest.raises(ValidationError):
            await service.set_color(created.id, "red")

    @pytest.mark.asyncio
    async def test_load_from_seeded_backend(self, store):
        from taskboard.backends.memory import MemoryTaskBackend
        from taskboard.services.tasks import TaskService

        backend = MemoryTaskBackend(seed_mock_data=True)
        await backend.connect()
        service = TaskService(store=store, backend=backend)

        count = await service.load()

        assert count == 5
        assert service.get("4").status == "Completed"
