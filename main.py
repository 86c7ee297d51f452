from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv
from flasgger import Swagger
from swagger__config import SWAGGER_CONFIG, SWAGGER_TEMPLATE
import os

load_dotenv()
from app.config import Config  # noqa: E402
from app.extensions import db  # noqa: E402
from app.errors import LedgerError  # noqa: E402
from app.api.booking.appointments import appointments_bp  # noqa: E402
from app.api.admin.appointments import admin_appointments_bp  # noqa: E402
from app.api.admin.users import admin_users_bp  # noqa: E402
from app.api.admin.finance import admin_finance_bp  # noqa: E402


def create_app(test_config=None):
    print("Starting create_app()")
    app = Flask(__name__)
    try:
        app.config.from_object(Config)
        # Must be applied before db.init_app, which reads the database URI
        if test_config:
            app.config.update(test_config)
        print(f"Config loaded: {len(app.config)} items")

        CORS(app)
        db.init_app(app)
        print("Database initialized")

        host = os.environ.get("API_HOST", "127.0.0.1:5000")
        swagger_template = SWAGGER_TEMPLATE.copy()
        swagger_template["host"] = host
        Swagger(app, config=SWAGGER_CONFIG, template=swagger_template)
        print("Swagger initialized - Access at /api/docs")

        blueprints = [
            appointments_bp,
            admin_appointments_bp,
            admin_users_bp,
            admin_finance_bp,
        ]
        for bp in blueprints:
            app.register_blueprint(bp)
            print(f"  ✓ {bp.name} registered")

        @app.errorhandler(LedgerError)
        def handle_ledger_error(e):
            if e.status_code >= 500:
                app.logger.error(f"{e.kind}: {e.message}")
            return jsonify(e.to_dict()), e.status_code

        @app.route("/")
        def home():
            """
            Root endpoint - API status
            ---
            tags:
              - Utility
            responses:
              200:
                description: API is running
            """
            return {"status": "ok", "message": "Backend is running!"}, 200

        print(f"Total routes registered: {len(list(app.url_map.iter_rules()))}")

    except Exception as e:
        print(f"Error during app creation: {e}")
        import traceback

        print(f"Full traceback: {traceback.format_exc()}")
        raise

    print("create_app() completed successfully")
    return app


app = create_app()


if __name__ == "__main__":
    # Create a .env containing:
    #       MYSQL_PUBLIC_URL= mysql+pymysql://<USER>:<PASSWORD>@<HOST>:<PORT>/counsel_ledger
    port = int(os.environ.get("PORT", 5000))
    app.run(
        host="0.0.0.0", port=port, debug=os.environ.get("FLASK_ENV") != "production"
    )
