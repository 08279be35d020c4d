from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
import os
from supplychain.logger import get_logger

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def create_app(test_config=None):
    from pathlib import Path

    app = Flask(__name__)

    # Get singleton logger
    logger = get_logger("supplychain")
    logger.info("Initializing Flask application")

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY')

    # Prefer an explicit DATABASE_URL env var; otherwise keep the SQLite
    # database inside the project's `instance/` directory.
    db_env = os.environ.get('DATABASE_URL')
    if db_env:
        app.config['SQLALCHEMY_DATABASE_URI'] = db_env
    else:
        base_dir = Path(__file__).parent.parent
        instance_dir = base_dir / 'instance'
        instance_dir.mkdir(parents=True, exist_ok=True)
        default_db_path = instance_dir / 'supplychain.db'
        app.config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{str(default_db_path.resolve())}"

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Bounded compare-and-swap retries before a concurrent write surfaces as Conflict
    app.config['INVENTORY_MAX_RETRIES'] = int(os.environ.get('INVENTORY_MAX_RETRIES', '3'))

    if test_config:
        app.config.update(test_config)

    # SECURITY: Require SECRET_KEY - no fallback
    if not app.config['SECRET_KEY']:
        logger.critical("SECRET_KEY not set in environment! Application cannot start.")
        raise RuntimeError("SECRET_KEY environment variable is required")

    if app.config['INVENTORY_MAX_RETRIES'] < 1:
        raise RuntimeError("INVENTORY_MAX_RETRIES must be at least 1")

    logger.debug(f"Database configured: {app.config['SQLALCHEMY_DATABASE_URI'].split(':', 1)[0]}")

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    logger.debug("Extensions initialized")

    # Import models to ensure they're registered with SQLAlchemy
    from supplychain.data.inventory.raw_material import RawMaterial
    from supplychain.data.inventory.produced_good import ProducedGood, RecipeLine
    from supplychain.data.inventory.department_stock import DepartmentStock
    from supplychain.data.inventory.stock_movement import StockMovement
    from supplychain.data.sales.sale import Sale
    from supplychain.data.transfers.transfer_request import TransferRequest, TransferItem

    logger.debug("Models imported and registered")

    # Change notifier shared by every service built for this app
    from supplychain.business.events.change_notifier import ChangeNotifier
    app.extensions['change_notifier'] = ChangeNotifier()

    # Register blueprints
    from supplychain.presentation.routes import init_app as init_routes
    init_routes(app)

    logger.info("Flask application initialization complete")

    return app
