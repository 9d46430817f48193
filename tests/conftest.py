"""
Test Fixtures
=============

Shared fixtures for all test modules.
"""

import json
import pytest
from unittest.mock import MagicMock
from datetime import datetime

from pterodactyl_service.billing import InMemoryBillingEngine
from pterodactyl_service.config import PanelConfig, ServiceConfig
from pterodactyl_service.models import Location, Node, Order, Package, Price, User
from pterodactyl_service.panel import Allocation, PanelServer, PterodactylClient
from pterodactyl_service.store import InMemoryHostStore


# ============================================
# CONFIG
# ============================================

@pytest.fixture
def test_config():
    """Test configuration with dummy values."""
    return ServiceConfig(
        panel=PanelConfig(
            api_url="https://panel.test",
            api_key="ptla_test_fake",
            sso_secret="sso_test_fake",
        ),
        log_format="text",
    )


# ============================================
# EGGS AND PACKAGES
# ============================================

def egg_variable(env_variable, default_value="", rules="required|string", user_viewable=True, **extra):
    attributes = {
        "env_variable": env_variable,
        "name": extra.pop("name", env_variable.replace("_", " ").title()),
        "description": extra.pop("description", f"{env_variable} setting"),
        "user_viewable": user_viewable,
        "user_editable": user_viewable,
        "default_value": default_value,
        "rules": rules,
    }
    attributes.update(extra)
    return {"object": "egg_variable", "attributes": attributes}


def make_egg(*variables, egg_id=5):
    return {
        "id": egg_id,
        "nest": 1,
        "name": "Minecraft",
        "docker_image": "ghcr.io/pterodactyl/yolks:java_17",
        "startup": "java -Xmx{{SERVER_MEMORY}}M -jar {{SERVER_JARFILE}}",
        "relationships": {"variables": {"data": list(variables)}},
    }


@pytest.fixture
def minecraft_egg():
    """Egg with one variable of each kind."""
    return make_egg(
        egg_variable("PLAYERS", "4", "required|numeric|min:1|max:10", name="Max Players"),
        egg_variable("SERVER_JARFILE", "server.jar", "required|string|max:20"),
        egg_variable("PVP", "1", "required|boolean"),
        egg_variable("DIFFICULTY", "normal", "required|string|in:peaceful,easy,normal,hard"),
        egg_variable("SERVER_PORT", "AUTO_PORT", "required|numeric"),
        egg_variable("RCON_PASSWORD", "", "nullable|string"),
        egg_variable("BUILD_NUMBER", "latest", "required|string", user_viewable=False),
    )


@pytest.fixture
def locations():
    """Amsterdam (stock 5), Frankfurt (sold out), New York (unlimited, tiny node)."""
    return [
        Location(1, "Amsterdam", stock=5, nodes=[
            Node(1, 1, "ams-1", memory=8192, disk=100000),
        ]),
        Location(2, "Frankfurt", stock=0, nodes=[
            Node(2, 2, "fra-1", memory=8192, disk=100000),
        ]),
        Location(3, "New York", stock=-1, nodes=[
            Node(3, 3, "nyc-1", memory=512, disk=100000),
        ]),
        Location(4, "London", stock=-1, nodes=[
            Node(4, 4, "lon-1", memory=8192, disk=100000),
        ]),
    ]


@pytest.fixture
def package(minecraft_egg):
    """Minecraft package offered in Amsterdam, Frankfurt and New York."""
    return Package(
        id=3,
        name="Minecraft 1GB",
        data={
            "egg": json.dumps(minecraft_egg),
            "locations": [1, 2, 3],
            "excluded_variables": [],
            "memory_limit": 1024,
            "disk_limit": 5120,
            "cpu_limit": 100,
            "database_limit": 1,
            "backup_limit": 2,
            "allocation_limit": 1,
            "environment": {"RCON_PASSWORD": "PASSWORD"},
        },
        price=Price(renewal_price=10, period=30, cancellation_fee=0),
    )


@pytest.fixture
def user():
    return User(id=7, email="player@example.com", username="player", first_name="Alex", last_name="Smith")


@pytest.fixture
def order(user, package):
    """Active order in Amsterdam."""
    return Order(
        id=42,
        user=user,
        package=package,
        due_date=datetime(2024, 1, 1),
        options={"location": 1, "PLAYERS": "8"},
    )


# ============================================
# HOST COLLABORATORS
# ============================================

@pytest.fixture
def store(locations, package, order):
    """In-memory host store holding the fixtures above."""
    return InMemoryHostStore(orders=[order], packages=[package], locations=locations)


@pytest.fixture
def billing():
    return InMemoryBillingEngine()


# ============================================
# PANEL
# ============================================

REMOTE_USER = {
    "id": 99,
    "email": "player@example.com",
    "username": "player",
    "first_name": "Alex",
    "last_name": "Smith",
}


@pytest.fixture
def panel_server():
    """Server 11 with its default allocation on 10.0.0.5:25565."""
    return PanelServer(
        id=11,
        uuid="a1b2c3",
        name="Minecraft 1GB",
        allocation=101,
        external_id="42",
        allocations=[Allocation(101, "10.0.0.5", 25565)],
    )


@pytest.fixture
def mock_client(panel_server):
    """Mock panel client; the order already has a server."""
    client = MagicMock(spec=PterodactylClient)
    client.get_server = MagicMock(return_value=panel_server)
    client.create_server = MagicMock(return_value=panel_server)
    client.get_or_create_user = MagicMock(return_value=dict(REMOTE_USER))
    client.update_user = MagicMock(return_value=dict(REMOTE_USER))
    client.free_allocation = MagicMock(return_value=Allocation(205, "10.0.0.9", 25570))
    client.server_ip = MagicMock(return_value="10.0.0.5:25565")
    client.request_sso_url = MagicMock(return_value={"redirect": "https://panel.test/sso/abc"})
    return client


# ============================================
# LIFECYCLE
# ============================================

@pytest.fixture
def adapter(test_config, store, billing, mock_client):
    """Lifecycle adapter over in-memory host collaborators and a mock panel."""
    from pterodactyl_service.lifecycle import LifecycleAdapter

    return LifecycleAdapter(test_config, store, billing, mock_client)


# ============================================
# FASTAPI TEST CLIENT
# ============================================

@pytest.fixture
def test_client(test_config, store, billing, mock_client):
    """FastAPI test client around the mocked collaborators."""
    from fastapi.testclient import TestClient
    from pterodactyl_service.api import create_app

    app = create_app(test_config, store, billing, mock_client)
    return TestClient(app)
