from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from accounts.credentials import normalize_email
from entries.models import Action, Entry
from entries.voting import cast_vote

DEMO_PASSWORD = 'password123'

USERS = [
    ('John Doe', 'john@example.com'),
    ('Jane Smith', 'jane@example.com'),
    ('Mike Johnson', 'mike@example.com'),
]

# (owner index, fields, votes as (voter index, action))
ENTRIES = [
    (0, dict(title='The Shawshank Redemption', type='Movie', director='Frank Darabont',
             budget='$25,000,000', location='United States', duration='142 minutes', year_time='1994',
             image_url='https://images.unsplash.com/photo-1489599849927-2ee91cede3ba?w=400',
             is_released=True),
     [(1, Action.LIKE), (2, Action.LIKE)]),
    (0, dict(title='Breaking Bad', type='TV', director='Vince Gilligan',
             budget='$3,000,000 per episode', location='United States', duration='5 seasons',
             year_time='2008-2013',
             image_url='https://images.unsplash.com/photo-1598899134739-24c46f58b8c0?w=400',
             is_released=True),
     [(0, Action.LIKE), (1, Action.LIKE), (2, Action.LIKE)]),
    (1, dict(title='Inception', type='Movie', director='Christopher Nolan',
             budget='$160,000,000', location='United States', duration='148 minutes', year_time='2010',
             image_url='https://images.unsplash.com/photo-1506905925346-21bda4d32df4?w=400',
             is_released=True),
     [(0, Action.LIKE), (2, Action.DISLIKE)]),
    (1, dict(title='Stranger Things', type='TV', director='The Duffer Brothers',
             budget='$6,000,000 per episode', location='United States', duration='4 seasons',
             year_time='2016-2022',
             image_url='https://images.unsplash.com/photo-1518709268805-4e9042af2176?w=400',
             is_released=True),
     [(0, Action.LIKE)]),
    (2, dict(title='The Dark Knight', type='Movie', director='Christopher Nolan',
             budget='$185,000,000', location='United States', duration='152 minutes', year_time='2008',
             image_url='https://images.unsplash.com/photo-1531259683007-016a7b628fc3?w=400',
             is_released=False),
     []),
    (2, dict(title='Game of Thrones', type='TV', director='David Benioff, D.B. Weiss',
             budget='$15,000,000 per episode', location='United States', duration='8 seasons',
             year_time='2011-2019',
             image_url='https://images.unsplash.com/photo-1518709268805-4e9042af2176?w=400',
             is_released=True),
     [(0, Action.LIKE), (1, Action.LIKE), (2, Action.DISLIKE)]),
    (0, dict(title='Pulp Fiction', type='Movie', director='Quentin Tarantino',
             budget='$8,500,000', location='United States', duration='154 minutes', year_time='1994',
             image_url='https://images.unsplash.com/photo-1489599849927-2ee91cede3ba?w=400',
             is_released=True),
     [(1, Action.DISLIKE)]),
    (1, dict(title='The Office', type='TV', director='Greg Daniels',
             budget='$1,000,000 per episode', location='United States', duration='9 seasons',
             year_time='2005-2013',
             image_url='https://images.unsplash.com/photo-1598899134739-24c46f58b8c0?w=400',
             is_released=True),
     [(2, Action.LIKE)]),
]


class Command(BaseCommand):
    help = 'Seed demo users and entries; votes go through the ledger'

    def handle(self, *args, **kwargs):
        User = get_user_model()

        self.stdout.write("Creating users...")
        users = []
        for name, email in USERS:
            user, created = User.objects.get_or_create(
                username=normalize_email(email),
                defaults={'email': normalize_email(email), 'first_name': name},
            )
            if created:
                user.set_password(DEMO_PASSWORD)
                user.save(update_fields=['password'])
            users.append(user)
        self.stdout.write(f"{len(users)} users ready (password: {DEMO_PASSWORD}).")

        self.stdout.write("Creating entries...")
        created_count = 0
        with transaction.atomic():
            for owner_idx, fields, votes in ENTRIES:
                owner = users[owner_idx]
                if Entry.objects.filter(user=owner, title=fields['title']).exists():
                    continue
                entry = Entry.objects.create(user=owner, **fields)
                for voter_idx, action in votes:
                    cast_vote(users[voter_idx].pk, entry.pk, action)
                created_count += 1

        self.stdout.write(self.style.SUCCESS(
            f"Seeded {created_count} entries ({len(ENTRIES) - created_count} already present)."
        ))
