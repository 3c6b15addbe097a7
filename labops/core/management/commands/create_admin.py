"""
Management command to create (or promote) an ADMIN account
Usage: python manage.py create_admin <username> --email a@b.c --name "Jane Doe" [--password ...]
"""
from getpass import getpass
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from labops.core.models import User


class Command(BaseCommand):
    help = 'Create an ADMIN user, or promote an existing user to ADMIN'

    def add_arguments(self, parser):
        parser.add_argument('username')
        parser.add_argument('--email', default='')
        parser.add_argument('--name', default='')
        parser.add_argument('--password', help='Prompted for when omitted and the user is new')

    def handle(self, *args, **options):
        username = options['username'].strip()
        if not username:
            raise CommandError('Username cannot be empty.')

        with transaction.atomic():
            user = User.objects.filter(username=username).first()
            if user is not None:
                user.role = User.ROLE_ADMIN
                user.is_staff = True
                if options['name']:
                    user.name = options['name']
                user.save(update_fields=['role', 'is_staff', 'name', 'updated_at'])
                self.stdout.write(self.style.SUCCESS(f'✓ Promoted {username} to ADMIN'))
                return

            password = options['password'] or getpass('Password: ')
            if not password:
                raise CommandError('A password is required for a new user.')
            User.objects.create_user(
                username=username,
                email=options['email'],
                password=password,
                name=options['name'],
                role=User.ROLE_ADMIN,
                is_staff=True,
            )
        self.stdout.write(self.style.SUCCESS(f'✓ Created admin {username}'))
