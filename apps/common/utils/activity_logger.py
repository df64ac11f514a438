"""
Activity logging utilities.

Provides helper functions for logging user activities and system events
to the ActivityLog model.
"""
import logging

from apps.common.models import ActivityLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Extract the client IP address from the request.

    Handles proxies and load balancers by checking X-Forwarded-For header.
    """
    if not request:
        return None

    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def log_activity(user, action_type, resource_type, resource_id,
                 metadata=None, request=None, actor_type=None):
    """
    Log an activity to the ActivityLog model.

    Args:
        user: User instance or None for system actions
        action_type: Type of action (LOGIN, CREATE, PUBLISH, etc.)
        resource_type: Type of resource (USER, SUBMISSION, PAYMENT, etc.)
        resource_id: ID of the resource (as string or UUID)
        metadata: Optional dict of additional data to store
        request: Optional request object for extracting IP and user agent
        actor_type: Optional actor type override (USER or SYSTEM)

    Returns:
        ActivityLog: The created entry, or None if it could not be written
    """
    if actor_type is None:
        actor_type = 'USER' if user else 'SYSTEM'

    log_data = {
        'user': user,
        'actor_type': actor_type,
        'action_type': action_type,
        'resource_type': resource_type,
        'resource_id': str(resource_id),
        'metadata': metadata or {},
    }

    if request is not None:
        log_data['ip_address'] = get_client_ip(request)
        log_data['user_agent'] = request.META.get('HTTP_USER_AGENT', '')

    try:
        return ActivityLog.objects.create(**log_data)
    except Exception as e:
        # Audit logging must not fail the main operation
        logger.error(f"Failed to create activity log: {e}")
        return None


def log_system_action(action_type, resource_type, resource_id, metadata=None):
    """Log an action performed by a background process."""
    return log_activity(
        user=None,
        action_type=action_type,
        resource_type=resource_type,
        resource_id=resource_id,
        metadata=metadata,
        actor_type='SYSTEM'
    )
