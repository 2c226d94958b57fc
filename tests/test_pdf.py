import unittest
import tempfile
import os
import shutil
import io
from datetime import date

# Add the project root to the path
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from diamond_dash.pdf import SeasonReportPDF, generate_season_report_pdf
from diamond_dash.models import Outing, Pitcher
from diamond_dash.pitcher_stats import calculate_pitcher_stats
from diamond_dash.reports import build_season_report


class TestSeasonReportPDF(unittest.TestCase):
    def setUp(self):
        """Set up test environment"""
        self.temp_dir = tempfile.mkdtemp()
        self.pitcher = Pitcher(id='p-jake', name='Jake Smith')
        self.outings = [
            Outing(date='2026-04-10', pitcher_id='p-jake', pitcher_name='Jake Smith', event_type='Game',
                   pitch_count=62, strikes=40, max_velo=71.5, focus='Command the outer half'),
            Outing(date='2026-04-14', pitcher_id='p-jake', pitcher_name='Jake Smith', event_type='Bullpen',
                   pitch_count=30, strikes=None),
            Outing(date='2026-04-16', pitcher_id='p-jake', pitcher_name='Jake Smith', event_type='Live ABs',
                   pitch_count=25, strikes=17),
        ]

    def tearDown(self):
        """Clean up test environment"""
        shutil.rmtree(self.temp_dir)

    def test_generator_initialization(self):
        """Custom styles are registered"""
        generator = SeasonReportPDF('Hawks Pitching')
        self.assertEqual(generator.team_name, 'Hawks Pitching')
        for style in ('ReportTitle', 'ReportSubtitle', 'SectionHeader', 'StatLabel', 'StatValue', 'TableCell'):
            self.assertIn(style, generator.styles)

    def test_generate_season_report(self):
        """A season report is written as a PDF file"""
        stats = calculate_pitcher_stats(self.pitcher, self.outings, date(2026, 4, 18))
        report = build_season_report(stats, 2026)
        output_path = os.path.join(self.temp_dir, 'reports', 'jake.pdf')

        result = generate_season_report_pdf(report, output_path, 'Hawks Pitching')

        self.assertEqual(result, output_path)
        self.assertTrue(os.path.exists(output_path))
        with open(output_path, 'rb') as f:
            self.assertEqual(f.read(4), b'%PDF')

    def test_generate_into_stream(self):
        """Reports can be written to an in-memory buffer"""
        stats = calculate_pitcher_stats(self.pitcher, self.outings, date(2026, 4, 18))
        buffer = io.BytesIO()

        generate_season_report_pdf(build_season_report(stats, 2026), buffer)

        self.assertTrue(buffer.getvalue().startswith(b'%PDF'))
        self.assertEqual(os.listdir(self.temp_dir), [])

    def test_generate_report_without_outings(self):
        stats = calculate_pitcher_stats(self.pitcher, [], date(2026, 4, 18))
        report = build_season_report(stats, 2026)
        output_path = os.path.join(self.temp_dir, 'empty.pdf')

        generate_season_report_pdf(report, output_path)
        self.assertGreater(os.path.getsize(output_path), 0)


if __name__ == '__main__':
    unittest.main()
