"""
Tests for app configuration and the database build.
"""
import pytest
from sqlalchemy import inspect, select

from supplychain import create_app, db
from supplychain.build import build_database, seed_demo_catalog
from supplychain.data.inventory.produced_good import ProducedGood
from supplychain.data.inventory.raw_material import RawMaterial


def test_create_app_requires_secret_key(monkeypatch):
    monkeypatch.delenv('SECRET_KEY', raising=False)

    with pytest.raises(RuntimeError):
        create_app(test_config={'SQLALCHEMY_DATABASE_URI': 'sqlite://'})


def test_create_app_rejects_zero_retries():
    with pytest.raises(RuntimeError):
        create_app(test_config={
            'SECRET_KEY': 'x', 'SQLALCHEMY_DATABASE_URI': 'sqlite://', 'INVENTORY_MAX_RETRIES': 0,
        })


def test_api_blueprint_registered(app):
    assert 'api' in app.blueprints
    assert app.extensions['change_notifier'] is not None


def test_build_database_creates_tables_and_seeds(tmp_path):
    app = create_app(test_config={
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'build.db'}",
    })

    build_database(seed_demo=True, app=app)

    with app.app_context():
        tables = set(inspect(db.engine).get_table_names())
        assert {'raw_materials', 'produced_goods', 'recipe_lines', 'department_stock',
                'stock_movements', 'sales', 'transfer_requests', 'transfer_items'} <= tables

        materials = {m.sku: m.quantity for m in db.session.scalars(select(RawMaterial))}
        assert materials == {"LEG-001": 400, "SEAT-001": 100}
        chair = db.session.scalars(select(ProducedGood)).one()
        assert (chair.sku, chair.quantity, chair.recipe) == ("CHAIR-001", 0, {"LEG-001": 4, "SEAT-001": 1})

        # Seeding again leaves existing items alone
        assert seed_demo_catalog() == 0
        db.session.remove()
        db.drop_all()


def test_generate_env_writes_settings_once(tmp_path):
    import generate_env

    env_file = tmp_path / '.env'
    assert generate_env.write_env(generate_env.render_env(dev_mode=True), env_file=env_file)
    content = env_file.read_text()
    assert f"SECRET_KEY={generate_env.DEV_SECRET_KEY}" in content
    assert "INVENTORY_MAX_RETRIES=3" in content

    assert not generate_env.write_env("SECRET_KEY=other\n", env_file=env_file)
    assert generate_env.write_env("SECRET_KEY=other\n", force=True, env_file=env_file)
    assert (tmp_path / '.env.backup').read_text() == content
