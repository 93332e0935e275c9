import importlib
import inspect

import pytest

from oddsfeed.api.client import OddsAPIClient
from oddsfeed.ports.odds_source import OddsSource

# Mapping of module -> (ProtocolName, required_methods: {name: arity})
PORT_PROTOCOLS = {
    "oddsfeed.ports.odds_source": ("OddsSource", {"get_events": 2, "get_event_odds": 2}),
    "oddsfeed.ports.secrets_provider": ("SecretsProvider", {"get": 1}),
}


def _positional(fn) -> list[inspect.Parameter]:
    sig = inspect.signature(fn)
    # remove self / cls
    return [p for p in sig.parameters.values() if p.kind == p.POSITIONAL_OR_KEYWORD][1:]


@pytest.mark.parametrize("module_name,meta", PORT_PROTOCOLS.items())
def test_required_port_signatures(module_name, meta):
    proto_name, methods = meta
    module = importlib.import_module(module_name)
    proto = getattr(module, proto_name)
    assert inspect.isclass(proto), f"{proto_name} not a class"
    for method_name, arity in methods.items():
        fn = getattr(proto, method_name, None)
        assert fn is not None, f"Missing method {method_name} on {proto_name}"
        params = _positional(fn)
        assert (
            len(params) == arity
        ), f"{proto_name}.{method_name} expected {arity} args got {len(params)}"


@pytest.mark.parametrize("method_name", ["get_events", "get_event_odds"])
def test_rest_client_satisfies_odds_source(method_name):
    port_fn = getattr(OddsSource, method_name)
    client_fn = getattr(OddsAPIClient, method_name)

    assert inspect.iscoroutinefunction(client_fn)
    port_names = [p.name for p in _positional(port_fn)]
    client_names = [p.name for p in _positional(client_fn)]
    assert client_names[: len(port_names)] == port_names
    if method_name == "get_events":
        assert "status" in inspect.signature(client_fn).parameters
