"""
Inbound email to ticket conversion

An email either continues an existing ticket (same sender, matching subject,
created within the last 30 days) or opens a new email ticket whose category,
priority and team are derived from keywords in the subject and body.
"""
import logging
import re
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from uxone.core.models import UserRole, EmployeePosition
from uxone.core.utils import notify_user
from .models import Ticket, TicketComment
from .ticket_numbers import generate_email_ticket_number

logger = logging.getLogger(__name__)

User = get_user_model()

REPLY_WINDOW_DAYS = 30

# Checked in order, first match wins
CATEGORY_KEYWORDS = [
    ('BUG', ['bug', 'error', 'crash', 'broken', 'not working', 'failed', 'issue']),
    ('FEATURE_REQUEST', ['feature', 'enhancement', 'improvement', 'new', 'request']),
    ('TECHNICAL_ISSUE', ['technical', 'system', 'server', 'database', 'api', 'integration']),
    ('SUPPORT', ['help', 'support', 'question', 'how to', 'assistance']),
    ('GENERAL', ['general', 'inquiry', 'info', 'information']),
]

PRIORITY_KEYWORDS = [
    ('URGENT', ['urgent', 'critical', 'emergency', 'asap', 'immediate', 'broken', 'down']),
    ('HIGH', ['important', 'high priority', 'blocking', 'urgent']),
    ('LOW', ['low priority', 'when possible', 'suggestion', 'nice to have']),
]

TEAM_BY_CATEGORY = {
    'BUG': 'IS',
    'FEATURE_REQUEST': 'IS',
    'TECHNICAL_ISSUE': 'IS',
    'SUPPORT': 'CS',
    'GENERAL': 'CS',
}

REPLY_PREFIXES = [
    're:', 're :', 're-', 're -',
    'fw:', 'fw :', 'fw-', 'fw -',
    'fwd:', 'fwd :', 'fwd-', 'fwd -',
    'reply:', 'reply :', 'reply-', 'reply -',
]

EMAIL_RE = re.compile(r'([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})')


class EmailIntakeError(Exception):
    pass


def extract_email(sender):
    """'John Doe <john@example.com>' -> 'john@example.com'"""
    match = re.search(r'<(.+?)>', sender) or EMAIL_RE.search(sender)
    return match.group(1) if match else sender


def extract_name(sender):
    match = re.match(r'^([^<]+)<', sender)
    return match.group(1).strip() if match else 'Unknown Sender'


def _matches(keywords, subject, content):
    subject = subject.lower()
    content = content.lower()
    return any(keyword in subject or keyword in content for keyword in keywords)


def determine_category(subject, content):
    for category, keywords in CATEGORY_KEYWORDS:
        if _matches(keywords, subject, content):
            return category
    return 'SUPPORT'


def determine_priority(subject, content):
    for priority, keywords in PRIORITY_KEYWORDS:
        if _matches(keywords, subject, content):
            return priority
    return 'MEDIUM'


def determine_team(category):
    return TEAM_BY_CATEGORY.get(category, 'CS')


def clean_subject(subject):
    """Lower-cased subject with one leading reply/forward prefix removed"""
    cleaned = subject.lower().strip()
    for prefix in REPLY_PREFIXES:
        if cleaned.startswith(prefix):
            return cleaned[len(prefix):].strip()
    return cleaned


def find_existing_ticket(subject, sender_email):
    since = timezone.now() - timedelta(days=REPLY_WINDOW_DAYS)
    return Ticket.objects.filter(
        Q(title__icontains=clean_subject(subject)) | Q(title__icontains=subject),
        customer_email__iexact=sender_email,
        created_at__gte=since,
    ).order_by('-created_at').first()


def get_system_user():
    """The 'system' admin account, else the first admin"""
    admin_roles = [UserRole.ADMIN, UserRole.SUPER_ADMIN]
    user = User.objects.filter(username='system', role__in=admin_roles).first()
    if user is None:
        user = User.objects.filter(role__in=admin_roles).order_by('id').first()
    if user is None:
        raise EmailIntakeError('No system user found for email ticket creation')
    return user


def notify_team(team, title, message, link):
    """Notify the managers and admins of a department"""
    recipients = User.objects.filter(department=team or 'CS', is_active=True).filter(
        Q(role__in=[UserRole.MANAGER, UserRole.ADMIN]) |
        Q(position__in=[EmployeePosition.MANAGER, EmployeePosition.SENIOR_MANAGER,
                        EmployeePosition.GENERAL_MANAGER])
    )
    for member in recipients:
        notify_user(member, title, message, type='INFO', link=link)


def _email_date(timestamp):
    return timestamp or timezone.now().isoformat()


def process_inbound_email(payload):
    """
    Turn a webhook email payload into a ticket or a ticket reply.

    Returns a (action, ticket, comment) tuple where action is
    'reply_added' or 'ticket_created'.
    """
    sender = payload['from']
    subject = payload['subject']
    content = payload.get('text') or payload.get('html') or ''
    timestamp = payload.get('timestamp')
    sender_email = extract_email(sender)
    sender_name = extract_name(sender)
    system_user = get_system_user()

    existing = find_existing_ticket(subject, sender_email)
    if existing is not None:
        with transaction.atomic():
            comment = TicketComment.objects.create(
                ticket=existing,
                author=system_user,
                author_type='CUSTOMER',
                is_internal=False,
                content=(
                    f"Email reply received from: {sender}\n"
                    f"Date: {_email_date(timestamp)}\n"
                    f"Subject: {subject}\n\n"
                    f"Reply Content:\n{content}\n\n"
                    f"---\nThis comment was automatically added from an email reply."
                ),
            )
            if existing.status in ('RESOLVED', 'CLOSED'):
                existing.status = 'OPEN'
                existing.save(update_fields=['status', 'updated_at'])
        logger.info(f"Email reply from {sender_email} added to {existing.ticket_number}")
        notify_team(existing.assigned_team, f"Email Reply: {existing.ticket_number}",
                    f'A reply has been received from {sender_name} ({sender_email}) for ticket: "{existing.title}"',
                    f'/helpdesk/tickets/{existing.id}')
        return 'reply_added', existing, comment

    category = determine_category(subject, content)
    priority = determine_priority(subject, content)
    team = determine_team(category)
    with transaction.atomic():
        ticket = Ticket.objects.create(
            ticket_number=generate_email_ticket_number(),
            title=subject,
            description=(
                f"Email received from: {sender}\n"
                f"Date: {_email_date(timestamp)}\n"
                f"Subject: {subject}\n\n"
                f"Email Content:\n{content}\n\n"
                f"---\nThis ticket was automatically created from an email."
            ),
            priority=priority,
            category=category,
            customer_email=sender_email,
            customer_name=sender_name,
            assigned_team=team,
            tags=['email-conversion', 'auto-generated'],
            source='email',
            created_by=system_user,
        )
        comment = TicketComment.objects.create(
            ticket=ticket,
            author=system_user,
            author_type='SYSTEM',
            is_internal=True,
            content=(
                f"Ticket created from email:\n\nFrom: {sender}\n"
                f"Date: {_email_date(timestamp)}\n"
                f"Message ID: {payload.get('messageId') or 'N/A'}\n\n"
                f"Original Email Content:\n{content}"
            ),
        )
    attachments = payload.get('attachments') or []
    if attachments:
        # The mail gateway forwards attachment metadata only, there is no file content to store
        logger.info(f"Ignored {len(attachments)} attachment(s) on email ticket {ticket.ticket_number}")
    logger.info(f"Created email ticket {ticket.ticket_number} ({category}/{priority}) for {sender_email}")
    notify_team(team, f"New Email Ticket: {ticket.ticket_number}",
                f'A new ticket has been created from an email: "{ticket.title}"',
                f'/helpdesk/tickets/{ticket.id}')
    return 'ticket_created', ticket, comment
