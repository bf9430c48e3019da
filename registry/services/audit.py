from typing import Optional, Any, Dict
from django.contrib.auth import get_user_model
from registry.models import AuditEvent

User = get_user_model()

def log_action(*, user: Optional[User], action: str, tenant_id=None, object_type: Optional[str]=None, object_id=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    return AuditEvent.objects.create(
        user=user if isinstance(user, User) and user.pk else None,
        tenant_id=tenant_id,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
    )
