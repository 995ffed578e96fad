"""
Tests for the train search request log and route analytics.
MongoDB is mocked; no server is needed.
"""
from unittest.mock import patch, MagicMock

from django.test import TestCase, override_settings
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase
from rest_framework import status

import utils.mongo
from utils.mongo import get_mongo_db, log_api_request, get_top_routes

User = get_user_model()


class MongoUtilsTests(TestCase):

    def setUp(self):
        utils.mongo.reset_connection()
        self.addCleanup(utils.mongo.reset_connection)

    @override_settings(MONGODB_ENABLED=False)
    def test_disabled_logging_returns_no_db(self):
        with patch('utils.mongo.MongoClient') as client:
            self.assertIsNone(get_mongo_db())
            client.assert_not_called()

    @override_settings(MONGODB_ENABLED=True)
    def test_unreachable_server_disables_logging(self):
        from pymongo.errors import ServerSelectionTimeoutError

        with patch('utils.mongo.MongoClient') as client:
            client.return_value.admin.command.side_effect = ServerSelectionTimeoutError('down')

            self.assertIsNone(get_mongo_db())
            self.assertIsNone(get_mongo_db())
            client.assert_called_once()

    def test_log_search_request_updates_route_counter(self):
        db = MagicMock()
        with patch('utils.mongo.get_mongo_db', return_value=db):
            log_api_request(
                endpoint='/api/trains/',
                method='GET',
                user_id=1,
                request_params={'from': 'delhi', 'to': 'mumbai'},
                response_status=200,
                execution_time_ms=12.5,
                results_count=3
            )

        entry = db.api_logs.insert_one.call_args[0][0]
        self.assertEqual(entry['endpoint'], '/api/trains/')
        self.assertEqual(entry['results_count'], 3)
        self.assertEqual(entry['request_params']['from'], 'delhi')
        route_filter = db.route_analytics.update_one.call_args[0][0]
        self.assertEqual(route_filter, {'origin': 'Delhi', 'destination': 'Mumbai'})

    def test_log_listing_without_route_skips_counter(self):
        db = MagicMock()
        with patch('utils.mongo.get_mongo_db', return_value=db):
            log_api_request('/api/trains/', 'GET', None, {}, 200, 3.0)

        db.api_logs.insert_one.assert_called_once()
        db.route_analytics.update_one.assert_not_called()

    def test_top_routes_without_mongo(self):
        with patch('utils.mongo.get_mongo_db', return_value=None):
            self.assertEqual(get_top_routes(), [])

    def test_top_routes_passes_limit(self):
        db = MagicMock()
        db.api_logs.aggregate.return_value = iter([
            {'origin': 'delhi', 'destination': 'mumbai', 'search_count': 4}
        ])
        with patch('utils.mongo.get_mongo_db', return_value=db):
            routes = get_top_routes(limit=3)

        self.assertEqual(routes[0]['search_count'], 4)
        pipeline = db.api_logs.aggregate.call_args[0][0]
        self.assertIn({'$limit': 3}, pipeline)


class APILoggingMiddlewareTests(APITestCase):

    @patch('utils.middleware.log_api_request')
    def test_train_search_is_logged(self, mock_log):
        response = self.client.get('/api/trains/', {'from': 'Delhi', 'to': 'Mumbai'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        mock_log.assert_called_once()
        kwargs = mock_log.call_args.kwargs
        self.assertEqual(kwargs['endpoint'], '/api/trains/')
        self.assertEqual(kwargs['request_params'], {'from': 'Delhi', 'to': 'Mumbai'})
        self.assertEqual(kwargs['response_status'], 200)
        self.assertEqual(kwargs['results_count'], 0)
        self.assertIsNone(kwargs['user_id'])

    @patch('utils.middleware.log_api_request')
    def test_authenticated_search_records_user(self, mock_log):
        user = User.objects.create_user(username='searcher', password='test123')
        self.client.force_authenticate(user=user)

        self.client.get('/api/trains/')

        self.assertEqual(mock_log.call_args.kwargs['user_id'], user.pk)

    @patch('utils.middleware.log_api_request')
    def test_other_endpoints_not_logged(self, mock_log):
        self.client.get('/api/profile/')
        mock_log.assert_not_called()

    @patch('utils.middleware.log_api_request', side_effect=RuntimeError('mongo exploded'))
    def test_logging_failure_does_not_break_response(self, mock_log):
        response = self.client.get('/api/trains/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class TopRoutesAPITests(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='user', password='test123')
        self.admin = User.objects.create_user(username='admin', password='test123', is_admin=True)

    @patch('analytics.views.get_top_routes')
    def test_admin_gets_top_routes(self, mock_top):
        mock_top.return_value = [{'origin': 'delhi', 'destination': 'mumbai', 'search_count': 7}]
        self.client.force_authenticate(user=self.admin)

        response = self.client.get('/api/analytics/top-routes/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        mock_top.assert_called_once_with(limit=5)

    @patch('analytics.views.get_top_routes', return_value=[])
    def test_limit_is_clamped(self, mock_top):
        self.client.force_authenticate(user=self.admin)

        self.client.get('/api/analytics/top-routes/', {'limit': 100})
        mock_top.assert_called_with(limit=20)

        self.client.get('/api/analytics/top-routes/', {'limit': 'abc'})
        mock_top.assert_called_with(limit=5)

    def test_regular_user_forbidden(self):
        self.client.force_authenticate(user=self.user)

        response = self.client.get('/api/analytics/top-routes/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated(self):
        response = self.client.get('/api/analytics/top-routes/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
