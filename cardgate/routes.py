"""Provides the JSON API."""

from datetime import timedelta
import logging

from flask import Blueprint, Response, current_app, jsonify, make_response, \
    request

from .auth.decorators import requires_session
from .controllers import access, admin, authentication

logger = logging.getLogger(__name__)
blueprint = Blueprint('cardgate', __name__, url_prefix='/api')


def set_cookies(response: Response, data: dict) -> None:
    """
    Update a :class:`.Response` with cookies in controller data.

    Contollers seeking to update cookies must include a 'cookies' key
    in their response data. An empty value with an expiry of 0 deletes the
    cookie.
    """
    cookies = data.pop('cookies', None)
    if cookies is None:
        return None
    for cookie_key, (cookie_value, expires) in cookies.items():
        cookie_name = current_app.config[f'{cookie_key.upper()}_NAME']
        max_age = timedelta(seconds=expires)
        logger.debug('Set cookie %s, max_age %s', cookie_name, max_age)
        # Setting samesite to lax, to allow reasonable links to
        # authenticated views using GET requests.
        params = dict(httponly=True, samesite='Lax',
                      domain=current_app.config.get(
                          'AUTH_SESSION_COOKIE_DOMAIN'
                      ))
        if current_app.config['AUTH_SESSION_COOKIE_SECURE']:
            params['secure'] = True
        response.set_cookie(cookie_name, cookie_value, max_age=max_age,
                            **params)


@blueprint.after_request
def apply_response_headers(response: Response) -> Response:
    """Prevent UI redress attacks, and caching of session state."""
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['Cache-Control'] = 'no-store'
    return response


@blueprint.route('/auth/login', methods=['POST'])
def login() -> Response:
    """Log in with a username or phone number, and a password."""
    form_data = request.get_json(silent=True)
    if not isinstance(form_data, dict):
        form_data = request.form
    data, code, headers = authentication.login(form_data)
    # Flask puts cookie-setting methods on the response, so we do that here
    # instead of in the controller.
    cookies = {'cookies': data.pop('cookies', None)}
    response = make_response(jsonify(data), code, headers)
    set_cookies(response, cookies)
    return response


@blueprint.route('/auth/logout', methods=['POST'])
def logout() -> Response:
    """Log out, and clear the session cookies."""
    data, code, headers = authentication.logout(request.proof)
    cookies = {'cookies': data.pop('cookies', None)}
    response = make_response(jsonify(data), code, headers)
    set_cookies(response, cookies)
    return response


@blueprint.route('/auth/session', methods=['GET'])
@requires_session()
def session_status() -> Response:
    """Describe the current session."""
    data, code, headers = authentication.session_status(request.identity)
    return make_response(jsonify(data), code, headers)


@blueprint.route('/access/<string:card_id>', methods=['GET'])
@requires_session()
def access_card(card_id: str) -> Response:
    """Get the video behind a card."""
    data, code, headers = access.access_card(request.identity, card_id)
    return make_response(jsonify(data), code, headers)


@blueprint.route('/admin/users/<string:account_id>/force-logout',
                 methods=['POST'])
@requires_session(admin=True)
def force_logout(account_id: str) -> Response:
    """Forcibly log out another account."""
    data, code, headers = admin.force_logout(request.identity, account_id)
    return make_response(jsonify(data), code, headers)
