"""
Test suite for the documents module
Tests: numbering templates, number issuing, bulk import, access rules, upload/download, approval
"""
import json
import shutil
import tempfile

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from uxone.core.models import AuditLog, Notification, UserRole, EmployeePosition
from uxone.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from uxone.documents.access import check_document_access, is_restricted_document_type
from uxone.documents.models import DocumentTemplate, DocumentNumber, Document
from uxone.documents.numbering import generate_document_number, format_document_number, DocumentNumberError

MEDIA_ROOT = tempfile.mkdtemp()


class DocumentNumberingTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(department='QC')
        self.template = TestDataFactory.create_document_template(self.user, template_code='QP01', prefix='QP',
                                                                 year=2020)

    def test_numbers_are_sequential_and_use_current_year(self):
        year = timezone.localdate().year
        first = generate_document_number(self.template.id, user=self.user)
        second = generate_document_number(self.template.id, user=self.user)
        self.assertEqual(first.document_number, f'QP-{year}-001')
        self.assertEqual(second.document_number, f'QP-{year}-002')
        self.assertEqual(second.sequence_number, 2)
        self.template.refresh_from_db()
        self.assertEqual(self.template.current_sequence, 2)

    def test_inactive_or_missing_template(self):
        self.template.is_active = False
        self.template.save()
        with self.assertRaises(DocumentNumberError):
            generate_document_number(self.template.id)
        with self.assertRaises(DocumentNumberError):
            generate_document_number(999999)
        self.assertEqual(DocumentNumber.objects.count(), 0)

    def test_format(self):
        self.assertEqual(format_document_number('WI', 2025, 7), 'WI-2025-007')
        self.assertEqual(format_document_number('WI', 2025, 1234), 'WI-2025-1234')


class DocumentTemplateAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.qc_user = TestDataFactory.create_user(department='QC')
        self.ops_user = TestDataFactory.create_user(department='OPS')
        self.client.authenticate_user(self.qc_user)

    def test_create_template(self):
        response = self.client.post('/api/v1/document-templates/', {
            'template_name': 'Quality Procedure',
            'template_code': ' qp-main ',
            'prefix': 'QP',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['template_code'], 'QP-MAIN')
        self.assertEqual(response.data['year'], timezone.localdate().year)
        self.assertEqual(response.data['current_sequence'], 0)

        response = self.client.post('/api/v1/document-templates/', {
            'template_name': 'Duplicate', 'template_code': 'QP-MAIN', 'prefix': 'QP',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_managers_create_templates(self):
        self.client.authenticate_user(self.ops_user)
        response = self.client.post('/api/v1/document-templates/', {
            'template_name': 'Work Instruction', 'template_code': 'WI', 'prefix': 'WI',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_filters_and_usage_count(self):
        used = TestDataFactory.create_document_template(self.qc_user, template_code='QP01')
        TestDataFactory.create_document_template(self.qc_user, template_code='WI01', prefix='WI')
        generate_document_number(used.id, user=self.qc_user)

        response = self.client.get('/api/v1/document-templates/', {'search': 'qp'})
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['usage_count'], 1)

        detail = self.client.get(f'/api/v1/document-templates/{used.id}/')
        self.assertEqual(len(detail.data['recent_numbers']), 1)

    def test_delete_used_template_deactivates(self):
        used = TestDataFactory.create_document_template(self.qc_user)
        unused = TestDataFactory.create_document_template(self.qc_user)
        generate_document_number(used.id)

        response = self.client.delete(f'/api/v1/document-templates/{used.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['deactivated'])
        used.refresh_from_db()
        self.assertFalse(used.is_active)

        response = self.client.delete(f'/api/v1/document-templates/{unused.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(DocumentTemplate.objects.filter(pk=unused.pk).exists())

    def test_bulk_create_skips_existing_codes(self):
        TestDataFactory.create_document_template(self.qc_user, template_code='QP01')
        response = self.client.post('/api/v1/document-templates/bulk/', {'templates': [
            {'template_name': 'Procedure', 'template_code': 'qp01', 'prefix': 'QP', 'revision_number': 0},
            {'template_name': 'Form', 'template_code': 'FM01', 'prefix': 'FM', 'revision_number': '2'},
            {'template_name': 'Form copy', 'template_code': 'FM01', 'prefix': 'FM', 'revision_number': 1},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual([s['template_code'] for s in response.data['skipped']], ['QP01', 'FM01'])
        self.assertEqual(DocumentTemplate.objects.get(template_code='FM01').revision_number, 2)

    def test_bulk_create_validation(self):
        response = self.client.post('/api/v1/document-templates/bulk/', {'templates': [
            {'template_name': 'Procedure', 'template_code': '', 'prefix': 'QP', 'revision_number': 'x'},
            'not a row',
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Template 1: template_code is required', response.data['details'])
        self.assertIn('Template 1: revision_number must be a valid number', response.data['details'])
        self.assertIn('Template 2: must be an object', response.data['details'])

        response = self.client.post('/api/v1/document-templates/bulk/', {'templates': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_generate_number_endpoint(self):
        template = TestDataFactory.create_document_template(self.qc_user, prefix='SOP')
        project = TestDataFactory.create_project(self.qc_user)
        response = self.client.post('/api/v1/document-numbers/generate/',
                                    {'template_id': template.id, 'project_id': project.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['document_number'].startswith('SOP-'))
        self.assertTrue(AuditLog.objects.filter(action='document_number').exists())

        numbers = self.client.get(f'/api/v1/projects/{project.id}/document-numbers/')
        self.assertEqual(len(numbers.data), 1)

        response = self.client.post('/api/v1/document-numbers/generate/', {'template_id': 999999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.post('/api/v1/document-numbers/generate/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class DocumentAccessTests(TestCase):

    def setUp(self):
        self.owner = TestDataFactory.create_user(department='QC')
        self.project_owner = TestDataFactory.create_user(department='IS')
        self.project = TestDataFactory.create_project(self.project_owner)

    def make_document(self, doc_type=None, department='QC', project=None):
        return Document.objects.create(
            name='Spec sheet.pdf', file='documents/general/spec.pdf', owner=self.owner,
            department=department, metadata={'type': doc_type} if doc_type else {}, project=project,
        )

    def test_restricted_types(self):
        self.assertTrue(is_restricted_document_type('contract'))
        self.assertFalse(is_restricted_document_type('drawing'))

        contract = self.make_document('contract', project=self.project)
        allowed, reason = check_document_access(contract, self.owner)
        self.assertFalse(allowed)
        self.assertIn('Senior Managers', reason)
        self.assertTrue(check_document_access(contract, self.project_owner)[0])
        senior = TestDataFactory.create_user(position=EmployeePosition.SENIOR_MANAGER, department='HR')
        self.assertTrue(check_document_access(contract, senior)[0])

    def test_regular_documents(self):
        document = self.make_document()
        self.assertTrue(check_document_access(document, self.owner)[0])
        self.assertTrue(check_document_access(document, TestDataFactory.create_admin())[0])

        qc_manager = TestDataFactory.create_user(department='qc', role=UserRole.MANAGER)
        self.assertTrue(check_document_access(document, qc_manager)[0])
        hr_manager = TestDataFactory.create_user(department='HR', position=EmployeePosition.MANAGER)
        self.assertFalse(check_document_access(document, hr_manager)[0])
        self.assertFalse(check_document_access(document, TestDataFactory.create_user(department='QC'))[0])


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class DocumentAPITests(TestCase):

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.owner = TestDataFactory.create_user(department='QC')
        self.client.authenticate_user(self.owner)

    def upload(self, name='report.pdf', content=b'%PDF-1.4 test', **extra):
        data = {'file': SimpleUploadedFile(name, content, content_type='application/pdf')}
        data.update(extra)
        return self.client.post('/api/v1/documents/', data, format='multipart')

    def test_upload_and_download(self):
        project = TestDataFactory.create_project(self.owner)
        response = self.upload(project=project.id, metadata=json.dumps({'type': 'drawing'}))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['department'], 'QC')
        self.assertEqual(response.data['status'], 'PENDING')
        self.assertEqual(response.data['file_size'], len(b'%PDF-1.4 test'))

        document = Document.objects.get(pk=response.data['id'])
        self.assertIn(f'project_{project.id}', document.file.name)

        download = self.client.get(f'/api/v1/documents/{document.id}/download/')
        self.assertEqual(download.status_code, status.HTTP_200_OK)
        self.assertEqual(b''.join(download.streaming_content), b'%PDF-1.4 test')
        self.assertTrue(AuditLog.objects.filter(model_name='Document', action='view').exists())

    def test_files_are_not_served_from_media_url(self):
        response = self.upload(name='contract.pdf', metadata=json.dumps({'type': 'contract'}))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        document = Document.objects.get(pk=response.data['id'])
        self.assertNotIn('file', response.data)
        self.assertEqual(response.data['download_url'], f'/api/v1/documents/{document.id}/download/')

        anonymous = APIClient()
        self.assertEqual(anonymous.get(f'/media/{document.file.name}').status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(anonymous.get(response.data['download_url']).status_code, status.HTTP_401_UNAUTHORIZED)
        # Restricted type: the uploader is neither an admin, a senior manager nor the project owner
        self.assertEqual(self.client.get(response.data['download_url']).status_code, status.HTTP_403_FORBIDDEN)

    def test_upload_validation(self):
        response = self.client.post('/api/v1/documents/', {'name': 'nothing'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.upload(metadata='[1, 2]')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        with override_settings(DOCUMENT_MAX_SIZE=5):
            response = self.upload()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_read_only_position_cannot_upload(self):
        self.client.authenticate_user(TestDataFactory.create_user(position=EmployeePosition.OPERATOR))
        self.assertEqual(self.upload().status_code, status.HTTP_403_FORBIDDEN)

    def test_list_hides_inaccessible_documents(self):
        self.upload(name='mine.pdf')
        self.upload(name='contract.pdf', metadata=json.dumps({'type': 'contract'}))
        response = self.client.get('/api/v1/documents/')
        self.assertEqual([d['name'] for d in response.data], ['mine.pdf'])

        other = TestDataFactory.create_user(department='QC')
        self.client.authenticate_user(other)
        self.assertEqual(self.client.get('/api/v1/documents/').data, [])

    def test_only_owner_changes_document(self):
        document_id = self.upload().data['id']
        qc_manager = TestDataFactory.create_user(department='QC', position=EmployeePosition.MANAGER)
        self.client.authenticate_user(qc_manager)
        url = f'/api/v1/documents/{document_id}/'
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.owner)
        response = self.client.patch(url, {'name': 'renamed.pdf'}, format='json')
        self.assertEqual(response.data['name'], 'renamed.pdf')
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)

    def test_approval(self):
        document_id = self.upload().data['id']
        url = f'/api/v1/documents/{document_id}/approve/'
        self.assertEqual(self.client.post(url, {'action': 'approve'}, format='json').status_code,
                         status.HTTP_403_FORBIDDEN)

        approver = TestDataFactory.create_user(position=EmployeePosition.MANAGER, name='Quality Lead')
        self.client.authenticate_user(approver)
        response = self.client.post(url, {'action': 'reject', 'reason': 'Missing signature'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'REJECTED')
        self.assertEqual(response.data['rejection_reason'], 'Missing signature')
        self.assertTrue(Notification.objects.filter(user=self.owner, title='Document rejected').exists())

        response = self.client.post(url, {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
