"""
Toast channel endpoints.

Toasts also ride along on every portal response; these endpoints let the
front-end poll the queue and dismiss a toast before it expires.
"""
from flask import Blueprint

from ..services.toast_service import get_toast_queue, save_toast_queue
from ..utils import messages
from ..utils.errors import json_response, not_found

toasts_bp = Blueprint('toasts', __name__)


@toasts_bp.route('', methods=['GET'])
def list_toasts():
    return json_response()


@toasts_bp.route('/<toast_id>/dismiss', methods=['POST'])
def dismiss_toast(toast_id):
    queue = get_toast_queue()
    dismissed = queue.dismiss(toast_id)
    save_toast_queue(queue)
    if not dismissed:
        return not_found(messages.TOAST_NOT_FOUND)
    return json_response({'dismissed': toast_id})
