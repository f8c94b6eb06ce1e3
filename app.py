"""
Flask Application Entry Point
Uses the application factory pattern from mobility_pkg

Exposes both 'app' (Flask application instance) and 'application'
(WSGI callable) for WSGI servers.
"""
import os

from mobility_pkg import create_app

# Create the Flask application instance using the factory
app = create_app()
application = app

# Only for local development/testing
if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 8000)),
            debug=os.environ.get("DEBUG", "False") == "True")
