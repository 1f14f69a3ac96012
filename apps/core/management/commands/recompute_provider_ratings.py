"""
management command: recompute_provider_ratings

Rebuilds ProviderProfile.rating / total_reviews from the live reviews and
reports any drift from the incrementally maintained values. Repair tool only;
normal operation never needs it.

Usage:
    python manage.py recompute_provider_ratings           # report and fix
    python manage.py recompute_provider_ratings --check   # report only, exit 1 on drift
"""
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.providers.models import ProviderProfile
from apps.reviews import aggregator


class Command(BaseCommand):
    help = 'Recompute provider rating aggregates from reviews'

    def add_arguments(self, parser):
        parser.add_argument(
            '--check', action='store_true',
            help='Only report drift; do not write',
        )

    def handle(self, *args, **options):
        drifted = 0
        provider_ids = ProviderProfile.objects.values_list('user_id', flat=True)

        for provider_id in provider_ids:
            with transaction.atomic():
                profile = ProviderProfile.objects.select_for_update().get(user_id=provider_id)
                rating, total = aggregator.recompute(provider_id)
                if (profile.rating, profile.total_reviews) == (rating, total):
                    continue

                drifted += 1
                self.stdout.write(self.style.WARNING(
                    f'{profile.user_id}: stored {profile.rating} over {profile.total_reviews}, '
                    f'actual {rating} over {total}'
                ))
                if not options['check']:
                    profile.rating = rating
                    profile.total_reviews = total
                    profile.save(update_fields=['rating', 'total_reviews', 'updated_at'])

        if options['check'] and drifted:
            raise CommandError(f'{drifted} provider rating aggregates have drifted')

        action = 'found' if options['check'] else 'repaired'
        self.stdout.write(
            self.style.SUCCESS(f'recompute_provider_ratings: {action} {drifted} drifted profiles')
        )
