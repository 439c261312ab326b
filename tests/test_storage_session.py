import dataclasses
import json
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gaptrack.core.config import settings  # noqa: E402
from gaptrack.storage import (  # noqa: E402
    StorageError,
    StorageReconnectNeeded,
    StorageSession,
    StorageSetupRequired,
)


class StorageSessionTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def _config(self, directory_enabled):
        return dataclasses.replace(
            settings,
            storage_db_path=str(self.tmp / "kv.db"),
            directory_storage_enabled=directory_enabled,
        )

    async def _session(self, directory_enabled=True):
        session = StorageSession(self._config(directory_enabled))
        await session.start()
        self.addAsyncCleanup(session.close)
        return session

    async def test_fallback_mode_persists_across_sessions(self):
        session = await self._session(directory_enabled=False)
        self.assertEqual(session.storage_type, "fallback")
        self.assertFalse(session.needs_setup)

        session.require_ready().replace_category("contacts", [{"name": "Grace"}])
        await session.close()

        again = await self._session(directory_enabled=False)
        self.assertEqual(again.document.contacts[0].name, "Grace")

    async def test_fallback_mode_refuses_folders(self):
        session = await self._session(directory_enabled=False)
        with self.assertRaises(StorageError) as ctx:
            await session.setup_directory(str(self.tmp / "tracker"))
        self.assertEqual(ctx.exception.code, "storage_locked")

    async def test_directory_mode_needs_setup_first(self):
        session = await self._session()
        self.assertTrue(session.needs_setup)
        self.assertTrue(session.status()["needsSetup"])
        with self.assertRaises(StorageSetupRequired):
            session.require_ready()

    async def test_setup_directory_is_remembered(self):
        folder = self.tmp / "tracker"
        session = await self._session()
        await session.setup_directory(str(folder))

        self.assertTrue((folder / "jobs.json").exists())
        self.assertEqual(session.status()["directory"], str(folder.resolve()))
        session.require_ready().replace_category("applications", [{"company": "Acme"}])
        await session.close()

        again = await self._session()
        self.assertFalse(again.needs_setup)
        self.assertEqual(again.document.applications[0].company, "Acme")

    async def test_open_directory_requires_existing_folder(self):
        session = await self._session()
        with self.assertRaises(StorageReconnectNeeded):
            await session.open_directory(str(self.tmp / "missing"))

        folder = self.tmp / "existing"
        folder.mkdir()
        await session.open_directory(str(folder))
        self.assertEqual(session.document.applications, [])
        self.assertEqual(os.listdir(folder), [])

    async def test_lost_folder_can_be_reconnected(self):
        folder = self.tmp / "tracker"
        first = await self._session()
        await first.setup_directory(str(folder))
        first.require_ready().replace_category("contacts", [{"name": "Grace"}])
        await first.close()
        shutil.rmtree(folder)

        session = await self._session()
        self.assertTrue(session.status()["reconnectNeeded"])
        with self.assertRaises(StorageReconnectNeeded):
            await session.reconnect()

        folder.mkdir()
        document = await session.reconnect()
        self.assertEqual(document.contacts, [])
        self.assertFalse(session.status()["reconnectNeeded"])

    async def test_edits_are_refused_until_the_folder_is_loaded(self):
        folder = self.tmp / "tracker"
        first = await self._session()
        await first.setup_directory(str(folder))
        first.require_ready().replace_category("contacts", [{"name": "Grace"}, {"name": "Ada"}])
        await first.close()
        moved = self.tmp / "moved"
        folder.rename(moved)

        session = await self._session()
        self.assertTrue(session.status()["reconnectNeeded"])
        with self.assertRaises(StorageReconnectNeeded):
            session.require_ready()
        with self.assertRaises(StorageReconnectNeeded):
            session.sync.replace_category("contacts", [{"name": "New"}])

        moved.rename(folder)
        document = await session.reconnect()
        self.assertEqual([c.name for c in document.contacts], ["Grace", "Ada"])

        session.require_ready().replace_category("contacts", [*document.contacts, {"name": "New"}])
        await session.sync.flush()
        on_disk = json.loads((folder / "contacts.json").read_text(encoding="utf-8"))
        self.assertEqual([c["name"] for c in on_disk["items"]], ["Grace", "Ada", "New"])

    async def test_reset_wipes_data(self):
        session = await self._session(directory_enabled=False)
        session.require_ready().replace_category("contacts", [{"name": "Grace"}])
        await session.sync.flush()
        document = await session.reset()
        self.assertEqual(document.contacts, [])


if __name__ == "__main__":
    unittest.main()
