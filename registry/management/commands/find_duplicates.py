from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from registry.models import Patient, Tenant
from registry.services.dedupe import MIN_MATCH_SCORE, PatientInput, find_potential_duplicates


def _lookup(queryset, label, value):
    try:
        found = queryset.filter(id=value).first()
    except (ValueError, ValidationError):
        found = None
    if found is None:
        raise CommandError(f"{label} {value} not found")
    return found


class Command(BaseCommand):
    help = "Scan a tenant for likely duplicate patients and print each pair once. Never merges."

    def add_arguments(self, parser):
        parser.add_argument('--tenant', required=True, help="Tenant id to scan")
        parser.add_argument('--branch', default=None, help="Restrict the scan to one branch")
        parser.add_argument('--min-score', type=int, default=MIN_MATCH_SCORE,
                            help=f"Only report pairs at or above this score (floor {MIN_MATCH_SCORE})")

    def handle(self, *args, **options):
        tenant = _lookup(Tenant.objects.all(), "Tenant", options['tenant'])
        branch_id = None
        if options['branch']:
            branch_id = _lookup(tenant.branches.all(), "Branch", options['branch']).id
        min_score = max(MIN_MATCH_SCORE, options['min_score'])

        patients = Patient.objects.filter(tenant=tenant)
        if branch_id:
            patients = patients.filter(branch_id=branch_id)

        seen = set()
        pairs = 0
        for patient in patients.order_by('created_at', 'id').iterator():
            matches = find_potential_duplicates(
                PatientInput.from_patient(patient),
                tenant.id,
                branch_id,
                patient.id,
            )
            for match in matches:
                key = frozenset((patient.id, match.patient.id))
                if match.score < min_score or key in seen:
                    continue
                seen.add(key)
                pairs += 1
                self.stdout.write(
                    f"{match.score:3d}  {patient.id}  {match.patient.id}  {'; '.join(match.match_reasons)}"
                )

        self.stdout.write(self.style.SUCCESS(f"Found {pairs} candidate pair(s) in tenant {tenant.name}"))
