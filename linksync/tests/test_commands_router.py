import tempfile
import types
import unittest
from pathlib import Path

from fastapi import HTTPException

from linksync.errors import RemoteStoreError
from linksync.models import FieldSyncResult, NoteSyncSummary, TaskData, TaskStatus
from linksync.routers import commands as commands_router
from linksync.routers import tasks as tasks_router
from linksync.settings_store import SettingsStore
from linksync.vault import Vault


class _FakeCache:
    def __init__(self) -> None:
        self.cleared = 0
        self.missing: set[str] = set()

    def invalidate_all(self) -> None:
        self.cleared += 1

    async def get_task_data(self, task_id):
        if task_id in self.missing:
            raise RemoteStoreError("not found", status_code=404, endpoint=f"/v2/task/{task_id}")
        if task_id == "T-down":
            raise RemoteStoreError("boom", status_code=500, endpoint=f"/v2/task/{task_id}")
        return TaskData(
            id=task_id,
            title="Write report",
            status=TaskStatus(id="KS-P-1-TODO", name="To do"),
            tags=[],
        )


class _FakeSynchronizer:
    def __init__(self) -> None:
        self.synced: list[str] = []

    async def sync_current_note(self, note):
        self.synced.append(note.relative_path)
        return NoteSyncSummary(
            notePath=note.relative_path,
            message="Synced 1 task(s) to Singularity",
            results=[FieldSyncResult(fieldPath="task", taskId="T-1", outcome="created")],
        )


class _FakeIntake:
    def __init__(self) -> None:
        self.modified: list[str] = []
        self.renamed: list[tuple[str, str]] = []

    def on_file_modified(self, path):
        self.modified.append(path)
        return path.endswith(".md")

    async def on_file_renamed(self, path, old_path=""):
        self.renamed.append((path, old_path))
        if not path.endswith(".md"):
            return None
        return NoteSyncSummary(notePath=path, message="Synced 0 task(s) to Singularity")


class CommandsRouterTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        (self.root / "Alpha.md").write_text("---\ntask: x\n---\n", encoding="utf-8")
        self.services = types.SimpleNamespace(
            cache=_FakeCache(),
            synchronizer=_FakeSynchronizer(),
            intake=_FakeIntake(),
            vault=Vault(self.root, "Work"),
            client=types.SimpleNamespace(has_token=True),
        )

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def _request(self, services=None):
        return types.SimpleNamespace(
            app=types.SimpleNamespace(state=types.SimpleNamespace(services=services))
        )

    async def test_refresh_cache_clears_everything(self) -> None:
        payload = await commands_router.refresh_cache(self._request(self.services))

        self.assertEqual(payload, {"status": "ok", "message": "Singularity cache cleared"})
        self.assertEqual(self.services.cache.cleared, 1)

    async def test_sync_note_reports_summary(self) -> None:
        body = commands_router.NotePathRequest(path="Alpha.md")

        payload = await commands_router.sync_current_note(self._request(self.services), body)

        self.assertEqual(payload["status"], "ok")
        self.assertEqual(payload["synced"], 1)
        self.assertEqual(payload["written"], 1)
        self.assertEqual(self.services.synchronizer.synced, ["Alpha.md"])

    async def test_sync_note_requires_token(self) -> None:
        self.services.client = types.SimpleNamespace(has_token=False)
        body = commands_router.NotePathRequest(path="Alpha.md")

        with self.assertRaises(HTTPException) as ctx:
            await commands_router.sync_current_note(self._request(self.services), body)

        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(self.services.synchronizer.synced, [])

    async def test_sync_note_rejects_missing_and_outside_paths(self) -> None:
        with self.assertRaises(HTTPException) as missing:
            await commands_router.sync_current_note(
                self._request(self.services), commands_router.NotePathRequest(path="Nope.md")
            )
        with self.assertRaises(HTTPException) as outside:
            await commands_router.sync_current_note(
                self._request(self.services), commands_router.NotePathRequest(path="../escape.md")
            )

        self.assertEqual(missing.exception.status_code, 404)
        self.assertEqual(outside.exception.status_code, 400)

    async def test_services_not_ready_returns_503(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            await commands_router.refresh_cache(self._request(None))

        self.assertEqual(ctx.exception.status_code, 503)

    async def test_modified_event_is_forwarded(self) -> None:
        payload = await commands_router.note_modified(
            self._request(self.services), commands_router.NotePathRequest(path="Alpha.md")
        )

        self.assertEqual(payload, {"status": "ok", "scheduled": True})
        self.assertEqual(self.services.intake.modified, ["Alpha.md"])

    async def test_renamed_event_syncs_immediately(self) -> None:
        payload = await commands_router.note_renamed(
            self._request(self.services), commands_router.RenameEvent(path="Beta.md", oldPath="Alpha.md")
        )
        ignored = await commands_router.note_renamed(
            self._request(self.services), commands_router.RenameEvent(path="image.png")
        )

        self.assertTrue(payload["synced"])
        self.assertEqual(payload["notePath"], "Beta.md")
        self.assertEqual(ignored, {"status": "ok", "synced": False})
        self.assertEqual(self.services.intake.renamed[0], ("Beta.md", "Alpha.md"))


class TasksRouterTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.cache = _FakeCache()
        self.request = types.SimpleNamespace(
            app=types.SimpleNamespace(state=types.SimpleNamespace(services=types.SimpleNamespace(cache=self.cache)))
        )

    async def test_get_task_returns_enriched_data(self) -> None:
        data = await tasks_router.get_task(self.request, "T-1")

        self.assertEqual(data.title, "Write report")
        self.assertEqual(data.status.name, "To do")

    async def test_get_task_maps_remote_errors(self) -> None:
        self.cache.missing.add("T-404")

        with self.assertRaises(HTTPException) as missing:
            await tasks_router.get_task(self.request, "T-404")
        with self.assertRaises(HTTPException) as down:
            await tasks_router.get_task(self.request, "T-down")

        self.assertEqual(missing.exception.status_code, 404)
        self.assertEqual(down.exception.status_code, 502)

class SettingsRouterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.store = SettingsStore(Path(self.tmpdir.name) / "settings.json")
        self.request = types.SimpleNamespace(
            app=types.SimpleNamespace(
                state=types.SimpleNamespace(services=types.SimpleNamespace(settings_store=self.store))
            )
        )

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def test_read_modify_write_keeps_the_stored_token(self) -> None:
        self.store.update({"apiToken": "secret"})

        payload = tasks_router.get_settings(self.request)
        self.assertEqual(payload["apiToken"], tasks_router.TOKEN_MASK)
        payload["autoSync"] = False
        result = tasks_router.update_settings(self.request, payload)

        self.assertEqual(self.store.settings.apiToken, "secret")
        self.assertFalse(self.store.settings.autoSync)
        self.assertEqual(result["apiToken"], tasks_router.TOKEN_MASK)

    def test_new_token_replaces_the_old_one(self) -> None:
        self.store.update({"apiToken": "secret"})

        tasks_router.update_settings(self.request, {"apiToken": "rotated"})

        self.assertEqual(self.store.settings.apiToken, "rotated")

    def test_invalid_settings_return_422(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            tasks_router.update_settings(self.request, {"cacheTTL": 0})

        self.assertEqual(ctx.exception.status_code, 422)


if __name__ == "__main__":
    unittest.main()
