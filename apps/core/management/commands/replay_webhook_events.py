"""
management command: replay_webhook_events

Retries dead-lettered gateway webhooks (UNMATCHED or FAILED). A payment.captured
that raced ahead of its order being recorded matches once the Transaction
exists.

Run via OS cron every 5 minutes:
  */5 * * * *  /path/to/venv/bin/python manage.py replay_webhook_events
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.payments.models import WebhookEvent, WebhookStatus
from apps.payments.reconciler import process_event

DEAD_LETTER_STATUSES = (WebhookStatus.UNMATCHED, WebhookStatus.FAILED)


class Command(BaseCommand):
    help = 'Retry webhook events that did not match a transaction'

    def add_arguments(self, parser):
        parser.add_argument(
            '--max-attempts', type=int, default=10,
            help='Skip events already attempted this many times (default 10)',
        )

    def handle(self, *args, **options):
        pending = list(
            WebhookEvent.objects
            .filter(status__in=DEAD_LETTER_STATUSES, attempts__lt=options['max_attempts'])
            .order_by('created_at')
            .values_list('pk', flat=True)
        )

        outcomes = {}
        for pk in pending:
            with transaction.atomic():
                record = WebhookEvent.objects.select_for_update().get(pk=pk)
                # Settled by a redelivery since we listed it
                if record.is_settled:
                    continue
                record.attempts += 1
                process_event(record)
            outcomes[record.status] = outcomes.get(record.status, 0) + 1
            if options['verbosity'] > 1:
                self.stdout.write(f'  {record.event} {record.event_id or record.pk}: {record.status}')

        summary = ', '.join(f'{count} {status}' for status, count in sorted(outcomes.items())) or 'nothing to do'
        self.stdout.write(
            self.style.SUCCESS(f'replay_webhook_events: {len(pending)} events retried ({summary})')
        )
