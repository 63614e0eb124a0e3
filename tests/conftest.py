import pytest

from dashboard_core.data_resolver import DataResolver
from dashboard_core.executor import ToolExecutor
from dashboard_core.filters import FilterStore
from dashboard_core.providers import LocalDatasetProvider
from dashboard_core.registry import WidgetRegistry, register_builtin_widgets
from dashboard_core.renderer import WidgetRenderer
from dashboard_core.store import DashboardStore


@pytest.fixture
def registry():
    return register_builtin_widgets(WidgetRegistry())


@pytest.fixture
def store(registry):
    return DashboardStore(registry)


@pytest.fixture
def provider():
    return LocalDatasetProvider()


@pytest.fixture
def executor(store, provider, registry):
    return ToolExecutor(store, provider, registry)


@pytest.fixture
def filter_store():
    return FilterStore()


@pytest.fixture
def resolver(provider):
    return DataResolver(provider, ttl=30.0)


@pytest.fixture
def renderer(registry, resolver, filter_store):
    return WidgetRenderer(registry, resolver, filter_store)
