import json
import os
import unittest
from dataclasses import replace
from negpos.domain.models import AdjustmentParameters
from negpos.infrastructure.persistence.json_repository import JsonAdjustmentRepository


class TestJsonAdjustmentRepository(unittest.TestCase):
    def setUp(self):
        import tempfile

        self._tmp = tempfile.TemporaryDirectory()
        self.repo = JsonAdjustmentRepository(os.path.join(self._tmp.name, "adjustments"))

    def tearDown(self):
        self._tmp.cleanup()

    def _path(self, file_id: str) -> str:
        return self.repo._path(file_id)

    def test_missing_file_returns_none(self):
        self.assertIsNone(self.repo.load("/film/none.raw"))

    def test_save_and_load(self):
        params = AdjustmentParameters()
        params = replace(
            params,
            inversion=replace(params.inversion, film_base_color=(0.8, 0.6, 0.4)),
            geometry=replace(
                params.geometry,
                rotation=1,
                crop_rect=(10.0, 20.0, 300.0, 200.0),
                perspective_points=((0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)),
            ),
            tone=replace(params.tone, exposure=0.5, auto_levels=False),
        )

        self.assertTrue(self.repo.save("/film/a.raw", params))
        loaded = self.repo.load("/film/a.raw")

        self.assertEqual(loaded, params)

    def test_document_layout(self):
        self.repo.save("/film/a.raw", AdjustmentParameters())
        with open(self._path("/film/a.raw"), encoding="utf-8") as f:
            doc = json.load(f)

        self.assertEqual(doc["file_id"], "/film/a.raw")
        self.assertEqual(doc["version"], 1)
        self.assertIn("film_base_color", doc["adjustments"])
        self.assertIn("target_hue_center", doc["adjustments"])

    def test_missing_fields_take_defaults(self):
        with open(self._path("/film/old.raw"), "w", encoding="utf-8") as f:
            json.dump({"file_id": "/film/old.raw", "adjustments": {"exposure": 1.5}}, f)

        loaded = self.repo.load("/film/old.raw")

        self.assertEqual(loaded.tone.exposure, 1.5)
        self.assertEqual(loaded.tone.contrast, 1.0)
        self.assertIsNone(loaded.inversion.film_base_color)
        self.assertEqual(loaded.grade, AdjustmentParameters().grade)

    def test_corrupt_file_returns_none(self):
        with open(self._path("/film/bad.raw"), "w", encoding="utf-8") as f:
            f.write("{not json")
        self.assertIsNone(self.repo.load("/film/bad.raw"))

    def test_delete(self):
        self.repo.save("/film/a.raw", AdjustmentParameters())
        self.repo.delete("/film/a.raw")
        self.assertIsNone(self.repo.load("/film/a.raw"))
        self.repo.delete("/film/a.raw")


if __name__ == "__main__":
    unittest.main()
