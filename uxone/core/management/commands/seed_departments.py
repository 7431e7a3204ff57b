from django.core.management.base import BaseCommand

from uxone.core.models import Department

DEPARTMENTS = [
    ('IS', 'Information Systems'),
    ('QC', 'Quality Control'),
    ('QA', 'Quality Assurance'),
    ('HR', 'Human Resources'),
    ('FIN', 'Finance'),
    ('LOG', 'Logistics'),
    ('PROC', 'Procurement'),
    ('PC', 'Production Planning'),
    ('PM', 'Production Maintenance'),
    ('FM', 'Facility Management'),
    ('CS', 'Customer Service'),
    ('RD', 'Research & Development'),
    ('MKT', 'Marketing'),
    ('SALES', 'Sales'),
    ('OPS', 'Operations'),
    ('ADMIN', 'Administration'),
]


class Command(BaseCommand):
    help = 'Create the standard department codes (existing rows are left untouched unless --update is given)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--update',
            action='store_true',
            help='Overwrite names of departments that already exist',
        )

    def handle(self, *args, **options):
        created_count = 0
        updated_count = 0
        for code, name in DEPARTMENTS:
            department, created = Department.objects.get_or_create(code=code, defaults={'name': name})
            if created:
                created_count += 1
                self.stdout.write(f'  Created {code} - {name}')
            elif options['update'] and department.name != name:
                department.name = name
                department.save(update_fields=['name', 'updated_at'])
                updated_count += 1
                self.stdout.write(f'  Updated {code} - {name}')

        self.stdout.write(self.style.SUCCESS(
            f'Departments seeded: {created_count} created, {updated_count} updated, '
            f'{len(DEPARTMENTS) - created_count - updated_count} unchanged'
        ))
