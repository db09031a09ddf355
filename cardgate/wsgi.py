"""Web Server Gateway Interface entry-point."""

import logging
import os

from .factory import create_web_app

__flask_app__ = None

logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')


def application(environ, start_response):
    """WSGI application factory."""
    for key, value in environ.items():
        # Copy string WSGI environ to os.environ. This is to get apache
        # SetEnv vars. It needs to be done before the call to
        # create_web_app() due to config.py reading os.environ at import.
        if key == 'SERVER_NAME':
            continue
        if isinstance(value, str):
            os.environ[key] = value

    global __flask_app__
    if __flask_app__ is None:
        __flask_app__ = create_web_app()
    return __flask_app__(environ, start_response)
