"""Document number issuing"""
import logging

from django.db import transaction
from django.utils import timezone

from .models import DocumentTemplate, DocumentNumber

logger = logging.getLogger(__name__)


class DocumentNumberError(Exception):
    pass


def format_document_number(prefix, year, sequence):
    return f"{prefix}-{year}-{str(sequence).zfill(3)}"


def generate_document_number(template_id, project=None, user=None):
    """
    Issue the next number of a template.

    The template row is locked while its sequence is incremented so two
    concurrent requests never receive the same number. The year part is the
    current year, not the template's year.
    """
    year = timezone.localdate().year
    with transaction.atomic():
        try:
            template = DocumentTemplate.objects.select_for_update().get(pk=template_id)
        except DocumentTemplate.DoesNotExist:
            raise DocumentNumberError('Document template not found')
        if not template.is_active:
            raise DocumentNumberError('Document template is not active')

        template.current_sequence += 1
        template.save(update_fields=['current_sequence', 'updated_at'])

        number = DocumentNumber.objects.create(
            document_number=format_document_number(template.prefix, year, template.current_sequence),
            template=template,
            project=project,
            sequence_number=template.current_sequence,
            year=year,
            created_by=user,
        )
    logger.info(f"Issued document number {number.document_number}")
    return number
