import unittest
import tempfile
import os
import shutil
import time
from datetime import date, timedelta
from unittest import mock

# Add the project root to the path
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from diamond_dash.main import create_app
from diamond_dash.models import DEFAULT_PITCH_TYPES, Outing
from diamond_dash.storage import StorageError

TEST_SECRET = 'test-secret-key-with-at-least-32-characters'


class RouteTestCase(unittest.TestCase):
    rate_limit = False

    def setUp(self):
        """Create an app backed by a temporary data directory"""
        self.temp_dir = tempfile.mkdtemp()
        self.app = create_app({
            'SECRET_KEY': TEST_SECRET,
            'DATA_DIR': self.temp_dir,
            'TESTING': True,
            'RATELIMIT_ENABLED': self.rate_limit,
            'PUBLIC_BASE_URL': 'https://team.example.com',
        })
        self.storage = self.app.extensions['storage']
        self.client = self.app.test_client()

    def tearDown(self):
        """Clean up test environment"""
        shutil.rmtree(self.temp_dir)

    def register(self, username='coach_k', password='long-enough-password'):
        return self.client.post('/register', json={'username': username, 'password': password})

    def create_pitcher(self, name='Jake', **extra):
        response = self.client.post('/api/pitchers', json=dict(name=name, **extra))
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()['pitcher_id']

    def create_outing(self, pitcher_id, **fields):
        data = {
            'pitcher_id': pitcher_id,
            'date': date.today().isoformat(),
            'event_type': 'Bullpen',
            'pitch_count': 40,
            'strikes': 28,
        }
        data.update(fields)
        response = self.client.post('/api/outings', json=data)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()['outing_id']


class TestAppFactory(unittest.TestCase):
    def test_secret_key_required(self):
        with mock.patch.dict(os.environ, {'SECRET_KEY': ''}):
            with self.assertRaises(RuntimeError):
                create_app({'DATA_DIR': tempfile.mkdtemp()})

    def test_short_secret_key_rejected(self):
        with self.assertRaises(RuntimeError):
            create_app({'SECRET_KEY': 'too-short', 'DATA_DIR': tempfile.mkdtemp()})


class TestAuthRoutes(RouteTestCase):
    def test_health(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['status'], 'healthy')

    def test_api_requires_login(self):
        response = self.client.get('/api/pitchers')
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.get_json()['success'])

    def test_register_and_login(self):
        response = self.register()
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.client.get('/api/pitchers').status_code, 200)

        self.client.get('/logout')
        self.assertEqual(self.client.get('/api/pitchers').status_code, 401)

        bad = self.client.post('/login', json={'username': 'coach_k', 'password': 'wrong-password'})
        self.assertEqual(bad.status_code, 401)
        unknown = self.client.post('/login', json={'username': 'nobody', 'password': 'whatever-password'})
        self.assertEqual(unknown.status_code, 401)

        good = self.client.post('/login', json={'username': 'coach_k', 'password': 'long-enough-password'})
        self.assertEqual(good.status_code, 200)
        self.assertEqual(self.client.get('/api/pitchers').status_code, 200)

    def test_register_validation(self):
        self.assertEqual(self.register(password='short').status_code, 400)
        self.assertEqual(self.register(username='ab').status_code, 400)
        self.assertEqual(self.register().status_code, 201)
        self.client.get('/logout')
        self.assertEqual(self.register().status_code, 409)

    def test_unknown_api_path_is_json(self):
        response = self.client.get('/api/nothing-here')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()['errors'], ['Endpoint not found'])


class TestRateLimiting(RouteTestCase):
    rate_limit = True

    def test_register_is_rate_limited(self):
        statuses = [self.register(password='short').status_code for _ in range(6)]
        self.assertEqual(statuses[:5], [400] * 5)
        self.assertEqual(statuses[5], 429)


class TestRosterAndOutings(RouteTestCase):
    def setUp(self):
        super().setUp()
        self.register()

    def test_roster_crud(self):
        pitcher_id = self.create_pitcher('Jake', max_weekly_pitches=100)

        roster = self.client.get('/api/pitchers').get_json()['pitchers']
        self.assertEqual(len(roster), 1)
        self.assertEqual(roster[0]['rest_label'], 'No Data')
        self.assertEqual(roster[0]['max_weekly_pitches'], 100)
        self.assertNotIn('outings', roster[0])

        duplicate = self.client.post('/api/pitchers', json={'name': 'jake'})
        self.assertEqual(duplicate.status_code, 409)

        invalid = self.client.post('/api/pitchers', json={'name': ''})
        self.assertEqual(invalid.status_code, 400)
        self.assertIn('Name is required', invalid.get_json()['errors'])

        renamed = self.client.put(f'/api/pitchers/{pitcher_id}', json={'name': 'Jacob'})
        self.assertEqual(renamed.status_code, 200)
        self.assertEqual(renamed.get_json()['pitcher']['name'], 'Jacob')
        self.assertEqual(renamed.get_json()['pitcher']['max_weekly_pitches'], 100)

        self.assertEqual(self.client.delete(f'/api/pitchers/{pitcher_id}').status_code, 200)
        self.assertEqual(self.client.get(f'/api/pitchers/{pitcher_id}').status_code, 404)

    def test_outing_updates_stats(self):
        pitcher_id = self.create_pitcher()
        self.create_outing(pitcher_id, pitch_count=50, strikes=40)

        pitcher = self.client.get(f'/api/pitchers/{pitcher_id}').get_json()['pitcher']
        self.assertEqual(pitcher['seven_day_pulse'], 50)
        self.assertEqual(pitcher['strike_percentage'], 80.0)
        self.assertEqual(pitcher['rest_status'], {'type': 'threw-today'})
        self.assertEqual(pitcher['rest_label'], 'Threw Today')
        self.assertEqual(len(pitcher['outings']), 1)

    def test_outing_by_name_adds_pitcher(self):
        response = self.client.post('/api/outings', json={
            'pitcher_name': 'Sam', 'date': '2026-04-18', 'event_type': 'Game', 'pitch_count': 30,
        })
        self.assertEqual(response.status_code, 201)
        outing = response.get_json()['outing']
        self.assertIsNotNone(outing['pitcher_id'])
        self.assertEqual(self.storage.get_pitcher(outing['pitcher_id']).name, 'Sam')

    def test_outing_validation(self):
        pitcher_id = self.create_pitcher()
        response = self.client.post('/api/outings', json={
            'pitcher_id': pitcher_id, 'date': '2026-04-18', 'event_type': 'Bullpen',
            'pitch_count': 20, 'strikes': 25,
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('Strikes cannot exceed pitch count', response.get_json()['errors'])

        missing = self.client.post('/api/outings', json={
            'pitcher_id': 'no-such-pitcher', 'date': '2026-04-18', 'event_type': 'Bullpen', 'pitch_count': 20,
        })
        self.assertEqual(missing.status_code, 404)

    def test_outing_update_and_delete(self):
        pitcher_id = self.create_pitcher()
        outing_id = self.create_outing(pitcher_id)
        created_at = self.storage.get_outing(outing_id).created_at

        response = self.client.put(f'/api/outings/{outing_id}', json={'pitch_count': 55, 'strikes': 33})
        self.assertEqual(response.status_code, 200)
        updated = self.client.get(f'/api/outings/{outing_id}').get_json()['outing']
        self.assertEqual(updated['pitch_count'], 55)
        self.assertEqual(updated['created_at'], created_at)

        self.assertEqual(self.client.delete(f'/api/outings/{outing_id}').status_code, 200)
        self.assertEqual(self.client.delete(f'/api/outings/{outing_id}').status_code, 404)

    def test_list_outings_for_pitcher(self):
        jake = self.create_pitcher('Jake')
        sam = self.create_pitcher('Sam')
        self.create_outing(jake)
        self.create_outing(sam)

        outings = self.client.get(f'/api/outings?pitcher_id={jake}').get_json()['outings']
        self.assertEqual(len(outings), 1)
        self.assertEqual(outings[0]['pitcher_id'], jake)
        self.assertEqual(len(self.client.get('/api/outings').get_json()['outings']), 2)

    def test_list_outings_includes_legacy_rows(self):
        """Rows saved before pitcher ids were recorded are listed by name"""
        jake = self.create_pitcher('Jake')
        self.create_outing(jake)
        self.storage.save_outing(Outing(date='2026-03-01', pitcher_name='Jake', pitch_count=30))
        self.storage.save_outing(Outing(date='2026-03-02', pitcher_name='Sam', pitch_count=30))

        outings = self.client.get(f'/api/outings?pitcher_id={jake}').get_json()['outings']
        self.assertEqual([o['date'] for o in outings], [date.today().isoformat(), '2026-03-01'])

    def test_seven_day_dashboard(self):
        jake = self.create_pitcher('Jake')
        sam = self.create_pitcher('Sam')
        self.create_outing(jake, pitch_count=20, strikes=None)
        self.create_outing(sam, pitch_count=70, strikes=None)
        old = (date.today() - timedelta(days=10)).isoformat()
        self.create_outing(jake, date=old, pitch_count=90, strikes=None)

        data = self.client.get('/api/dashboard/seven-day').get_json()
        self.assertEqual([p['name'] for p in data['pitchers']], ['Sam', 'Jake'])
        self.assertEqual(data['total_pitches'], 90)

    def test_failed_write_is_retryable(self):
        pitcher_id = self.create_pitcher()
        with mock.patch.object(self.storage, 'save_outing', side_effect=StorageError('disk full')):
            response = self.client.post('/api/outings', json={
                'pitcher_id': pitcher_id, 'date': '2026-04-18', 'event_type': 'Bullpen', 'pitch_count': 20,
            })
        self.assertEqual(response.status_code, 500)
        self.assertTrue(response.get_json()['retryable'])
        self.assertEqual(self.storage.get_all_outings(), [])

    def test_export(self):
        pitcher_id = self.create_pitcher()
        self.create_outing(pitcher_id)
        data = self.client.get('/api/export').get_json()['data']
        self.assertEqual(len(data['pitchers']), 1)
        self.assertEqual(len(data['outings']), 1)


class TestPitchMapRoutes(RouteTestCase):
    def setUp(self):
        super().setUp()
        self.register()
        self.pitcher_id = self.create_pitcher()
        self.outing_id = self.create_outing(self.pitcher_id)
        self.url = f'/api/outings/{self.outing_id}/pitch-locations'

    def test_chart_append_replace_clear(self):
        response = self.client.post(self.url, json={'pitches': [
            {'x': 0, 'y': 0},
            {'x': 0.9, 'y': 0.9, 'pitch_type': 2},
            {'x': 5, 'y': 0},
        ]})
        self.assertEqual(response.status_code, 201)
        body = response.get_json()
        self.assertEqual(body['saved'], 3)
        self.assertEqual(body['strikes'], 1)

        stored = self.client.get(self.url).get_json()
        self.assertEqual([p['pitch_number'] for p in stored['pitch_locations']], [1, 2, 3])
        self.assertEqual(stored['pitch_locations'][2]['x_location'], 1.0)
        self.assertEqual(stored['summary']['total'], 3)

        self.client.post(self.url, json={'pitches': [{'x': 0.1, 'y': 0.1}]})
        stored = self.client.get(self.url).get_json()['pitch_locations']
        self.assertEqual([p['pitch_number'] for p in stored], [1, 2, 3, 4])

        self.client.post(self.url, json={'pitches': [{'x': -0.1, 'y': 0.2}], 'replace': True})
        stored = self.client.get(self.url).get_json()['pitch_locations']
        self.assertEqual([p['pitch_number'] for p in stored], [1])

        cleared = self.client.delete(self.url).get_json()
        self.assertEqual(cleared['removed'], 1)
        self.assertEqual(self.client.get(self.url).get_json()['pitch_locations'], [])

    def test_replace_flag_must_be_boolean(self):
        self.client.post(self.url, json={'pitches': [{'x': 0, 'y': 0}, {'x': 0.1, 'y': 0.1}]})

        response = self.client.post(self.url, json={'pitches': [{'x': 0.2, 'y': 0}], 'replace': 'false'})
        self.assertEqual(response.status_code, 400)
        stored = self.client.get(self.url).get_json()['pitch_locations']
        self.assertEqual([p['pitch_number'] for p in stored], [1, 2])

        self.assertEqual(self.client.post(self.url, json={'pitches': [], 'replace': 1}).status_code, 400)

        appended = self.client.post(self.url, json={'pitches': [{'x': 0.2, 'y': 0}], 'replace': False})
        self.assertEqual(appended.status_code, 201)
        self.assertEqual(appended.get_json()['pitch_locations'][0]['pitch_number'], 3)

    def test_bad_pitch_batch_writes_nothing(self):
        response = self.client.post(self.url, json={'pitches': [{'x': 0, 'y': 0}, {'x': 'left', 'y': 0}]})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.client.get(self.url).get_json()['pitch_locations'], [])

        self.assertEqual(self.client.post(self.url, json={'pitches': 'all of them'}).status_code, 400)

    def test_pitch_map(self):
        pitches = [{'x': 0, 'y': 0, 'pitch_type': 1}] * 3 + [{'x': 0.9, 'y': -0.9, 'pitch_type': 2}]
        self.client.post(self.url, json={'pitches': pitches})
        map_url = f'/api/pitchers/{self.pitcher_id}/pitch-map'

        data = self.client.get(map_url).get_json()
        self.assertEqual(len(data['grid']), 18)
        self.assertEqual(len(data['grid'][0]), 14)
        self.assertEqual(sum(sum(row) for row in data['grid']), 4)
        self.assertEqual(data['summary'], {'total': 4, 'strikes': 3, 'balls': 1, 'strike_rate': 75.0})
        self.assertEqual(data['pitch_mix'][0]['label'], 'FB')
        self.assertEqual(max(max(row) for row in data['intensity']), 1.0)

        strikes_only = self.client.get(f'{map_url}?result=strike&cols=3&rows=3').get_json()
        self.assertEqual(strikes_only['grid'], [[0, 0, 0], [0, 3, 0], [0, 0, 0]])

        by_outing = self.client.get(f'{map_url}?outing_id={self.outing_id}&pitch_type=2').get_json()
        self.assertEqual(by_outing['summary']['total'], 1)

        self.assertEqual(self.client.get(f'{map_url}?cols=0').status_code, 400)
        self.assertEqual(self.client.get(f'{map_url}?result=foul').status_code, 400)

    def test_pitch_types(self):
        url = f'/api/pitchers/{self.pitcher_id}/pitch-types'
        self.assertEqual(self.client.get(url).get_json()['pitch_types'], DEFAULT_PITCH_TYPES)

        response = self.client.put(url, json={'pitch_types': {'1': '4S', '2': 'SL', '3': 'CH'}})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(url).get_json()['pitch_types'], {'1': '4S', '2': 'SL', '3': 'CH'})

        self.assertEqual(self.client.put(url, json={'pitch_types': {'0': 'FB'}}).status_code, 400)


class TestReportRoutes(RouteTestCase):
    def setUp(self):
        super().setUp()
        self.register()
        self.pitcher_id = self.create_pitcher('Jake')
        self.create_outing(self.pitcher_id, pitch_count=50, strikes=35, max_velo=70)

    def test_share_summary(self):
        data = self.client.get(f'/api/pitchers/{self.pitcher_id}/share-summary').get_json()
        self.assertEqual(data['dashboard_url'], f'https://team.example.com/player/{self.pitcher_id}')
        self.assertTrue(data['text'].startswith('Jake - Pitching Summary'))
        self.assertIn('Status: Threw today', data['text'])

    def test_report_pdf(self):
        response = self.client.get(f'/api/pitchers/{self.pitcher_id}/report.pdf')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, 'application/pdf')
        self.assertTrue(response.data.startswith(b'%PDF'))
        response.close()

    def test_report_pdf_leaves_no_temp_files(self):
        """The report is built in memory"""
        with mock.patch('tempfile.mkdtemp', side_effect=AssertionError('temp dir created')), \
                mock.patch('tempfile.NamedTemporaryFile', side_effect=AssertionError('temp file created')):
            response = self.client.get(f'/api/pitchers/{self.pitcher_id}/report.pdf')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data.startswith(b'%PDF'))
        self.assertIn('Jake_Season_Report_', response.headers['Content-Disposition'])
        response.close()

    def test_player_view_survives_unreadable_outings(self):
        with open(self.storage.outings_file, 'wb') as f:
            f.write(b'[\xff\xfe]')

        response = self.client.get(f'/player/{self.pitcher_id}')
        self.assertEqual(response.status_code, 200)
        pitcher = response.get_json()['pitcher']
        self.assertEqual(pitcher['outings'], [])
        self.assertEqual(pitcher['rest_status'], {'type': 'no-data'})

    def test_player_view_is_public(self):
        self.storage.update_pitch_types(self.pitcher_id, {'1': '4S'})
        self.client.get('/logout')

        data = self.client.get(f'/player/{self.pitcher_id}').get_json()
        self.assertEqual(data['pitcher']['name'], 'Jake')
        self.assertEqual(data['pitcher']['rest_label'], 'Threw Today')
        self.assertEqual(data['pitch_types'], {'1': '4S'})
        self.assertEqual(self.client.get('/player/unknown').status_code, 404)

    def test_player_view_falls_back_when_labels_are_slow(self):
        """The page still renders with default labels when the lookup is slow"""
        self.app.config['PITCH_TYPE_FETCH_TIMEOUT'] = 0.05

        def slow_pitch_types(pitcher_id):
            time.sleep(0.5)
            return {'1': '4S'}

        with mock.patch.object(self.storage, 'get_pitch_types', side_effect=slow_pitch_types):
            response = self.client.get(f'/player/{self.pitcher_id}')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['pitch_types'], DEFAULT_PITCH_TYPES)


if __name__ == '__main__':
    unittest.main()
