"""
Integration tests for the SmartOPD HTTP API.

These exercise registration, the public queue views, queue operation
by doctors and administrators, the error envelope and access control,
using DRF's APIClient within APITestCase.
"""
from django.core.cache import cache
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from ..models import Department, Doctor, Token, User


class OPDAPITests(APITestCase):
    def setUp(self) -> None:
        cache.clear()
        self.general = Department.objects.create(name='General Medicine', code='GEN')
        self.cardiology = Department.objects.create(name='Cardiology', code='CAR')

        self.admin_user = User.objects.create_user(username='admin1', password='P@ssw0rd1', role=User.ROLE_ADMIN)
        doctor_user = User.objects.create_user(username='dr_gen', password='P@ssw0rd1', role=User.ROLE_DOCTOR)
        self.doctor = Doctor.objects.create(
            user=doctor_user,
            name='Dr. Gen',
            department=self.general,
            status=Doctor.STATUS_APPROVED,
            reviewed_at=timezone.now(),
        )
        self.anon = APIClient()
        self.doctor_client = APIClient()
        self.doctor_client.force_authenticate(user=doctor_user)
        self.admin_client = APIClient()
        self.admin_client.force_authenticate(user=self.admin_user)

    def _register(self, name='Asha Rao', phone='9876543210', **extra):
        resp = self.anon.post(reverse('register'), {'name': name, 'phone': phone, **extra}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        return resp.data

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def test_register_returns_token_and_patient(self):
        data = self._register(age=34, gender='Female', symptoms='Fever')
        self.assertTrue(data['success'])
        self.assertEqual(data['token'], 1)
        self.assertEqual(data['label'], 'GEN-001')
        self.assertEqual(data['patient']['status'], 'waiting')
        self.assertEqual(data['patient']['department'], 'General Medicine')
        self.assertEqual(self._register(name='Ravi Kumar')['token'], 2)

    def test_register_into_named_department(self):
        data = self._register(department='Cardiology')
        self.assertEqual(data['label'], 'CAR-001')

    def test_register_strips_markup(self):
        data = self._register(name='<a href="x">Asha</a> <i>Rao</i>', symptoms='<b>high</b> <script>x</script>fever')
        token = Token.objects.get(pk=data['patient']['id'])
        self.assertEqual(token.name, 'Asha Rao')
        self.assertEqual(token.symptoms, 'high xfever')
        self.assertNotIn('<', data['patient']['name'])

    def test_register_keeps_ampersand(self):
        data = self._register(name='Asha & Ravi', symptoms='cough & cold')
        self.assertEqual(data['patient']['name'], 'Asha & Ravi')
        self.assertEqual(Token.objects.get(pk=data['patient']['id']).symptoms, 'cough & cold')

    def test_register_validation_envelope(self):
        resp = self.anon.post(reverse('register'), {'name': 'A', 'phone': '12345'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(resp.data['success'])
        self.assertEqual(resp.data['code'], 'validation_error')
        self.assertIn('name', resp.data['errors'])
        self.assertIn('phone', resp.data['errors'])
        self.assertTrue(resp.data['requestId'])
        self.assertFalse(Token.objects.exists())

    def test_request_id_is_echoed(self):
        resp = self.anon.get(reverse('queue_live'), HTTP_X_REQUEST_ID='abc123')
        self.assertEqual(resp['X-Request-ID'], 'abc123')

    # ------------------------------------------------------------------
    # Public queue views
    # ------------------------------------------------------------------
    def test_current_is_zero_when_nobody_called(self):
        resp = self.anon.get(reverse('queue_current'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['currentToken'], 0)
        self.assertIsNone(resp.data['patient'])

    def test_status_of_unknown_token_is_404(self):
        resp = self.anon.get(reverse('queue_status', args=[999]))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data['code'], 'not_found')
        self.assertFalse(resp.data['success'])

    def test_malformed_token_id_is_400_envelope(self):
        for url in ('/api/queue/status/abc', '/api/queue/status/-1'):
            resp = self.anon.get(url)
            self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertTrue(resp['Content-Type'].startswith('application/json'))
            self.assertEqual(resp.data['code'], 'validation_error')
            self.assertIn('tokenId', resp.data['errors'])
            self.assertTrue(resp.data['requestId'])

    def test_malformed_ids_on_operator_routes_are_400(self):
        resp = self.doctor_client.post('/api/queue/tokens/x1/complete')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tokenId', resp.data['errors'])
        resp = self.admin_client.post('/api/admin/doctors/abc/approve')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('doctorId', resp.data['errors'])
        resp = self.admin_client.get('/api/patients/1.5x')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_default_department_is_503_and_not_created(self):
        count = Department.objects.count()
        Department.objects.filter(code='GEN').update(name='Internal Medicine')
        resp = self.anon.get(reverse('queue_current'))
        self.assertEqual(resp.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(resp.data['code'], 'department_not_configured')
        self.assertFalse(Department.objects.filter(name='General Medicine').exists())
        self.assertEqual(Department.objects.count(), count)

    def test_departments_list(self):
        resp = self.anon.get(reverse('departments'))
        self.assertEqual(resp.status_code, 200)
        gen = next(d for d in resp.data['departments'] if d['code'] == 'GEN')
        self.assertEqual([d['id'] for d in gen['doctors']], [self.doctor.id])

    # ------------------------------------------------------------------
    # Queue operation
    # ------------------------------------------------------------------
    def test_next_requires_login(self):
        resp = self.anon.post(reverse('queue_next'), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_full_flow(self):
        ids = [self._register(name=n)['patient']['id'] for n in ('Alpha', 'Bravo', 'Charlie')]

        resp = self.doctor_client.post(reverse('queue_next'), {}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['calledToken'], 1)
        self.assertEqual(resp.data['nextToken'], 2)

        resp = self.anon.get(reverse('queue_status', args=[ids[2]]))
        self.assertEqual(resp.data['position'], 1)
        self.assertEqual(resp.data['currentlyServing'], 1)

        resp = self.doctor_client.post(reverse('queue_next'), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data['code'], 'queue_busy')

        resp = self.doctor_client.post(reverse('token_complete', args=[ids[0]]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['newStatus'], 'completed')

        resp = self.anon.get(reverse('queue_current'))
        self.assertEqual(resp.data['currentToken'], 0)

        resp = self.doctor_client.post(reverse('queue_next'), {}, format='json')
        self.assertEqual(resp.data['calledToken'], 2)

        resp = self.anon.get(reverse('queue_live'))
        self.assertEqual(resp.data['currentServing']['token'], 2)
        self.assertEqual(resp.data['totalWaiting'], 1)

    def test_next_on_empty_queue(self):
        resp = self.doctor_client.post(reverse('queue_next'), {}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.data['calledToken'])
        self.assertEqual(resp.data['message'], 'No more patients in queue')

    def test_doctor_cannot_operate_other_department(self):
        self._register(department='CAR')
        resp = self.doctor_client.post(reverse('queue_next'), {'department': 'CAR'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_complete_waiting_token_is_invalid(self):
        token_id = self._register()['patient']['id']
        resp = self.doctor_client.post(reverse('token_complete', args=[token_id]))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['code'], 'invalid_transition')

    def test_paused_queue_refuses_next(self):
        self._register()
        resp = self.doctor_client.post(reverse('doctor_queue_pause'), {'paused': True}, format='json')
        self.assertTrue(resp.data['isQueuePaused'])
        resp = self.doctor_client.post(reverse('queue_next'), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data['code'], 'queue_closed')

    def test_reset_is_admin_only(self):
        resp = self.doctor_client.post(reverse('queue_reset'), {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_reset(self):
        token_id = self._register()['patient']['id']
        self._register(name='Bravo')
        self.doctor_client.post(reverse('queue_next'), {}, format='json')
        self.doctor_client.post(reverse('token_complete', args=[token_id]))
        resp = self.admin_client.post(reverse('queue_reset'), {'department': 'GEN'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['patientsReset'], 1)
        self.assertEqual(Token.objects.filter(status='waiting').count(), 2)

    # ------------------------------------------------------------------
    # Doctors and admin
    # ------------------------------------------------------------------
    def test_doctor_signup_and_approval(self):
        resp = self.anon.post(reverse('doctor_signup'), {
            'username': 'dr_new', 'password': 'Str0ng-Passw0rd', 'name': 'Dr. New', 'department': 'CAR',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        doctor_id = resp.data['doctor']['id']

        resp = self.admin_client.get(reverse('admin_doctors'), {'status': 'pending'})
        self.assertEqual([d['id'] for d in resp.data['doctors']], [doctor_id])

        resp = self.admin_client.post(reverse('admin_doctor_approve', args=[doctor_id]))
        self.assertEqual(resp.data['doctor']['status'], 'approved')
        resp = self.admin_client.post(reverse('admin_doctor_reject', args=[doctor_id]))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_toggle_queue(self):
        resp = self.admin_client.post(reverse('admin_doctor_toggle_queue', args=[self.doctor.id]))
        self.assertTrue(resp.data['isQueuePaused'])
        resp = self.admin_client.post(reverse('admin_doctor_toggle_queue', args=[self.doctor.id]))
        self.assertFalse(resp.data['isQueuePaused'])

    def test_doctor_dashboard(self):
        self._register()
        resp = self.doctor_client.get(reverse('doctor_dashboard'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data['queue']), 1)
        self.assertFalse(resp.data['doctor']['isQueuePaused'])

    def test_admin_endpoints_forbidden_for_doctors(self):
        for url in (reverse('admin_doctors'), reverse('admin_patients')):
            self.assertEqual(self.doctor_client.get(url).status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_patients_with_stats(self):
        self._register()
        self._register(name='Bravo')
        self._register(department='CAR')
        self.doctor_client.post(reverse('queue_next'), {}, format='json')

        resp = self.admin_client.get(reverse('admin_patients'), {'department': 'GEN', 'status': 'waiting'})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['count'], 1)
        self.assertEqual(resp.data['stats']['total'], 2)
        self.assertEqual(resp.data['stats']['called'], 1)
        self.assertEqual(resp.data['stats']['waiting'], 1)

    def test_patient_detail_edit_and_delete(self):
        token_id = self._register()['patient']['id']
        url = reverse('patient_detail', args=[token_id])

        resp = self.admin_client.patch(url, {'phone': '9000000000', 'age': 40}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['patient']['phone'], '9000000000')
        self.assertEqual(resp.data['patient']['age'], 40)

        resp = self.admin_client.patch(url, {'phone': 'abc'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        self.assertEqual(self.admin_client.delete(url).status_code, 200)
        self.assertFalse(Token.objects.filter(pk=token_id).exists())
        self.assertEqual(self.admin_client.get(url).status_code, status.HTTP_404_NOT_FOUND)

    def test_healthz(self):
        resp = self.anon.get(reverse('healthz'))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()['db'])
