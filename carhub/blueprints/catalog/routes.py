from flask import jsonify
from flask_login import login_required

from carhub.blueprints.catalog import bp
from carhub.services import service_type_service


@bp.route("/api/service-types")
@login_required
def list_service_types():
    """Active service types, by name, for the order form."""
    return jsonify(
        [service_type.to_dict() for service_type in service_type_service.get_service_types()]
    )
