"""Shared fixtures: isolated settings, in-memory registry and fake clients."""

from unittest.mock import MagicMock

import pytest

from odata_mcp.config import reset_settings
from odata_mcp.models import Connection
from odata_mcp.registry import ConnectionRegistry
from odata_mcp.session import SessionManager
from odata_mcp.store import MemoryConfigStore
from odata_mcp.tools import OperationRouter

ENV_VARS = [
    "ODATA_SERVER",
    "ODATA_DATABASE",
    "ODATA_USER",
    "ODATA_PASSWORD",
    "ODATA_VERIFY_SSL",
    "ODATA_TIMEOUT",
    "MCP_TRANSPORT",
    "MCP_HOST",
    "MCP_PORT",
    "MCP_PATH",
    "MCP_LOG_FILE",
    "LOG_LEVEL",
]

METADATA_XML = """<?xml version="1.0" encoding="utf-8"?>
<edmx:Edmx Version="4.0" xmlns:edmx="http://docs.oasis-open.org/odata/ns/edmx">
  <edmx:DataServices>
    <Schema Namespace="Sales" xmlns="http://docs.oasis-open.org/odata/ns/edm">
      <EntityType Name="Contacts">
        <Key><PropertyRef Name="ID"/></Key>
        <Property Name="ID" Type="Edm.Decimal" Nullable="false"/>
        <Property Name="FirstName" Type="Edm.String" MaxLength="100"/>
        <Property Name="Notes" Type="Edm.String"></Property>
      </EntityType>
      <EntityType Name="Invoices">
        <Property Name="Total" Type="Edm.Decimal"/>
      </EntityType>
      <EntityContainer Name="Sales_Container">
        <EntitySet Name="Contacts" EntityType="Sales.Contacts"/>
        <EntitySet Name="Invoices" EntityType="Sales.Invoices"/>
      </EntityContainer>
    </Schema>
  </edmx:DataServices>
</edmx:Edmx>
"""


class FakeClientFactory:
    """Stands in for ODataClient.from_connection and records every build."""

    def __init__(self):
        self.healthy = True
        self.calls = []
        self.clients = []

    def __call__(self, connection, verify_ssl, timeout):
        client = MagicMock(name=f"client[{connection.name}]")
        client.test_connection.return_value = self.healthy
        self.calls.append((connection, verify_ssl, timeout))
        self.clients.append(client)
        return client


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep tests away from the real environment and ~/.odata-mcp."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("ODATA_MCP_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def metadata_xml():
    return METADATA_XML


@pytest.fixture
def prod_connection():
    return Connection(
        server="https://fms.example.com",
        database="Sales",
        user="admin",
        password="hunter2",
    )


@pytest.fixture
def store():
    return MemoryConfigStore()


@pytest.fixture
def registry(store):
    return ConnectionRegistry(store)


@pytest.fixture
def factory():
    return FakeClientFactory()


@pytest.fixture
def session(registry, factory):
    return SessionManager(registry, verify_ssl=True, timeout=30.0, client_factory=factory)


@pytest.fixture
def router(session, registry):
    return OperationRouter(session, registry)
