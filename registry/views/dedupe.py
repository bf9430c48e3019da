"""
Duplicate detection and merge endpoints.

All endpoints act inside the authenticated user's tenant; ids from
another tenant behave exactly like unknown ids or are refused.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from registry.permissions import IsAdminRole, tenant_for_user_or_raise
from registry.serializers.dedupe import DuplicateCheckSerializer, MergeRequestSerializer
from registry.services.dedupe import PatientInput, find_potential_duplicates, get_duplicate_stats
from registry.services.merge import merge_patients


class MergeRateThrottle(UserRateThrottle):
    scope = 'patient_merge'


def _patient_payload(p) -> dict:
    return {
        'id': str(p.id),
        'mrn': p.mrn,
        'name': p.name,
        'dob': p.dob.isoformat() if p.dob else None,
        'gender': p.gender,
        'contact': p.contact,
        'email': p.email,
        'address': p.address,
        'branchId': str(p.branch_id),
    }


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def check_duplicates(request):
    """Rank stored patients that may be the same person as the submitted identity."""
    tenant_id = tenant_for_user_or_raise(request.user)
    s = DuplicateCheckSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    patient_input = PatientInput(
        name=data['name'],
        dob=data.get('dob'),
        contact=data.get('contact'),
        email=data.get('email'),
        address=data.get('address'),
        gender=data.get('gender'),
    )
    matches = find_potential_duplicates(
        patient_input,
        tenant_id,
        data.get('branchId'),
        data.get('excludePatientId'),
    )
    return Response({
        'ok': True,
        'data': [
            {'patient': _patient_payload(m.patient), 'score': m.score, 'matchReasons': m.match_reasons}
            for m in matches
        ],
        'total': len(matches),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
@throttle_classes([MergeRateThrottle])
def merge(request):
    """Merge ``duplicateId`` into ``primaryId``.  Irreversible."""
    tenant_id = tenant_for_user_or_raise(request.user)
    s = MergeRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    result = merge_patients(
        s.validated_data['primaryId'],
        s.validated_data['duplicateId'],
        tenant_id,
        actor=request.user,
    )
    return Response({
        'ok': True,
        'primaryPatient': _patient_payload(result.primary_patient),
        'mergedData': result.as_dict(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def duplicate_stats(request, pk):
    tenant_id = tenant_for_user_or_raise(request.user)
    stats = get_duplicate_stats(pk, tenant_id)
    return Response({'ok': True, 'data': stats.as_dict()})
