# catalog_app/utils/permissions.py

from catalog_app.models import Enterprise, EnterpriseRole


def editable_enterprises_for(user):
    """Map enterprise name to id for every enterprise the user may manage"""
    if user is None:
        return {}

    query = Enterprise.query
    if not user.is_admin:
        managed_ids = [role.enterprise_id for role in EnterpriseRole.query.filter_by(user_id=user.id).all()]
        query = query.filter((Enterprise.owner_id == user.id) | (Enterprise.id.in_(managed_ids)))

    return {enterprise.name: enterprise.id for enterprise in query.order_by(Enterprise.name).all()}


def coerce_enterprise_id(value):
    """Integer id from an int or a numeric string; None for anything else"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def permission_by_id(editable_enterprises, enterprise_id):
    """Check whether an enterprise id (int or numeric string) is in the editable set"""
    enterprise_id = coerce_enterprise_id(enterprise_id)
    if enterprise_id is None:
        return False
    return enterprise_id in set(editable_enterprises.values())
