import unittest
import tempfile
import os
import shutil

# Add the project root to the path
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from bulk_import_outings import read_rows, import_outings
from diamond_dash.storage import StorageManager

CSV_CONTENT = """date,pitcher,event_type,pitch_count,strikes,max_velo,notes
2026-04-10,Jake,Game,62,40,71.5,Good command
04/12/2026,Sam,Live ABs,25,,,
2026-04-14,Jake,Bullpen,500,10,,Typo in count
"""


class TestBulkImport(unittest.TestCase):
    def setUp(self):
        """Set up test environment with temporary directory"""
        self.temp_dir = tempfile.mkdtemp()
        self.storage = StorageManager(data_dir=self.temp_dir)
        self.csv_path = os.path.join(self.temp_dir, 'outings.csv')
        with open(self.csv_path, 'w', encoding='utf-8') as f:
            f.write(CSV_CONTENT)

    def tearDown(self):
        """Clean up test environment"""
        shutil.rmtree(self.temp_dir)

    def test_import(self):
        """Valid rows are imported and unknown pitchers are added to the roster"""
        counts = import_outings(self.storage, read_rows(self.csv_path))
        self.assertEqual(counts, {'imported': 2, 'skipped': 0, 'failed': 1})

        self.assertEqual([p.name for p in self.storage.get_all_pitchers()], ['Jake', 'Sam'])
        sam_outing = [o for o in self.storage.get_all_outings() if o.pitcher_name == 'Sam'][0]
        self.assertEqual(sam_outing.date, '2026-04-12')
        self.assertEqual(sam_outing.event_type.value, 'External')
        self.assertIsNone(sam_outing.strikes)

    def test_reimport_skips_existing(self):
        import_outings(self.storage, read_rows(self.csv_path))
        counts = import_outings(self.storage, read_rows(self.csv_path))
        self.assertEqual(counts['imported'], 0)
        self.assertEqual(counts['skipped'], 2)
        self.assertEqual(len(self.storage.get_all_outings()), 2)


if __name__ == '__main__':
    unittest.main()
