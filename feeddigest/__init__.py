from flask import Flask
from flask_migrate import Migrate
from .extensions import db, login_manager, rq

migrate = Migrate()

def create_app(config_object='config.Config'):
    """App factory shared by the web process, the scheduler host and RQ workers."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    rq.init_app(app)

    # register models on the metadata
    from . import models  # noqa: F401

    @login_manager.user_loader
    def load_user(user_id):
        from .models.user import User
        return db.session.get(User, int(user_id))

    from .blueprints.admin import bp as admin_bp
    app.register_blueprint(admin_bp, url_prefix="/admin")

    @app.get('/healthz')
    def healthz():
        return {'status': 'ok'}

    return app
