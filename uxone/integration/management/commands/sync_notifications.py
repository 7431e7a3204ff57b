"""
Django management command to sync notifications between the main and mobile databases
"""
from django.core.management.base import BaseCommand, CommandError

from uxone.core.models import Notification, User
from uxone.integration.sync import (
    sync_notifications, sync_notifications_to_mobile, cleanup_old_notifications
)
from uxone.integration.webhooks import send_batch_webhooks


class Command(BaseCommand):
    help = 'Sync notifications between the main database and the mobile app database'

    def add_arguments(self, parser):
        parser.add_argument(
            '--username',
            help='Sync a single user only',
        )
        parser.add_argument(
            '--direction',
            choices=['from_mobile', 'to_mobile', 'both'],
            default='both',
            help='Which way to copy notifications',
        )
        parser.add_argument(
            '--cleanup-days',
            type=int,
            help='Also delete read notifications older than this many days',
        )
        parser.add_argument(
            '--push',
            action='store_true',
            help='Also deliver unread notifications to the mobile app webhook (with retries)',
        )

    def handle(self, *args, **options):
        username = options.get('username')
        direction = options['direction']
        cleanup_days = options.get('cleanup_days')
        push = options.get('push')

        users = User.objects.filter(is_active=True).order_by('username')
        if username:
            users = users.filter(username=username)
            if not users.exists():
                raise CommandError(f"User {username} not found")

        totals = {'synced': 0, 'skipped': 0, 'pushed': 0, 'errors': 0}
        for user in users:
            results = []
            if direction in ('from_mobile', 'both'):
                results.append(sync_notifications(user))
            if direction in ('to_mobile', 'both'):
                results.append(sync_notifications_to_mobile(user))
            if cleanup_days:
                results.append(cleanup_old_notifications(user, days=cleanup_days))
            if push:
                unread = list(Notification.objects.filter(user=user, read=False, hidden=False))
                if unread:
                    summary = send_batch_webhooks(unread, user.username)
                    totals['pushed'] += summary['successful']
                    totals['errors'] += summary['failed']
                    for error in summary['errors']:
                        self.stdout.write(self.style.WARNING(f"{user.username}: {error}"))

            for result in results:
                totals['synced'] += result.synced
                totals['skipped'] += result.skipped
                totals['errors'] += len(result.errors)
                for error in result.errors:
                    self.stdout.write(self.style.WARNING(f"{user.username}: {error}"))

        self.stdout.write(self.style.SUCCESS(
            f"Synced {totals['synced']}, skipped {totals['skipped']}, errors {totals['errors']}"
        ))
        if push:
            self.stdout.write(self.style.SUCCESS(f"Pushed {totals['pushed']} notifications"))
