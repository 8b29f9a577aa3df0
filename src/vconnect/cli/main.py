"""Main CLI entry point for vconnect."""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import click
from rich.console import Console

from vconnect import __version__
from vconnect.core.exceptions import ConfigurationError, OperationCancelledError, VConnectError
from vconnect.interfaces.exceptions import InterfaceError
from vconnect.utils.logging import get_logger, log_error, setup_logging

if TYPE_CHECKING:
    from vconnect.adapters.k8s_adapter import KubernetesAdapter
    from vconnect.adapters.portforward_adapter import KubernetesPortForwardTransport
    from vconnect.clients.kubernetes_client import KubernetesClient
    from vconnect.connect.connector import ConnectResult
    from vconnect.core.config import ConnectConfig

# stdout is reserved for --print
console = Console(stderr=True)
logger = get_logger(__name__)


class ConnectContext:
    """Shared context for CLI commands with lazy initialization."""

    def __init__(self, config_path: str | None):
        """Initialize context with config path.

        Args:
            config_path: Path to configuration file (optional)
        """
        self.config_path = config_path
        self.kube_context: str | None = None
        self._kube_client: KubernetesClient | None = None
        self._provider: KubernetesAdapter | None = None
        self._transport: KubernetesPortForwardTransport | None = None

    def load_config(self, **overrides) -> ConnectConfig:
        """Load the config file (if any) with command line overrides applied."""
        from vconnect.core.config import ConnectConfig

        if self.config_path:
            return ConnectConfig.from_file(self.config_path, **overrides)
        return ConnectConfig.from_dict({}, **overrides)

    @property
    def kube_client(self) -> KubernetesClient:
        """Get or create the host cluster client lazily."""
        if self._kube_client is None:
            from vconnect.clients.kubernetes_client import KubernetesClient

            self._kube_client = KubernetesClient(context=self.kube_context)
        return self._kube_client

    @property
    def provider(self) -> KubernetesAdapter:
        """Get or create Kubernetes adapter lazily."""
        if self._provider is None:
            from vconnect.adapters.k8s_adapter import KubernetesAdapter

            self._provider = KubernetesAdapter(client=self.kube_client)
        return self._provider

    @property
    def transport(self) -> KubernetesPortForwardTransport:
        """Get or create port forward transport lazily."""
        if self._transport is None:
            from vconnect.adapters.portforward_adapter import KubernetesPortForwardTransport

            self._transport = KubernetesPortForwardTransport(self.kube_client)
        return self._transport


@contextmanager
def cancel_on_signals() -> Iterator[threading.Event]:
    """Set the yielded event on SIGINT/SIGTERM; restore previous handlers on exit."""
    cancel_event = threading.Event()

    def handler(signum, frame) -> None:
        logger.debug("signal_received", signal=signum)
        cancel_event.set()

    previous = {sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield cancel_event
    finally:
        for sig, prev in previous.items():
            signal.signal(sig, prev)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to configuration file",
)
@click.pass_context
def cli(ctx: click.Context, config: str | None) -> None:
    """Connect to virtual clusters running inside a host cluster."""
    ctx.obj = ConnectContext(config_path=config)


@cli.command()
@click.argument("name", required=False)
@click.option("--namespace", "-n", help="The namespace of the vcluster")
@click.option("--context", "kube_context", help="The host cluster kube context to use")
@click.option("--pod", help="The pod to connect to")
@click.option("--server", help="The server to connect to")
@click.option("--local-port", type=int, help="The local port to forward the virtual cluster to")
@click.option("--address", help="The local address to start port forwarding under")
@click.option("--kube-config", help="Writes the created kube config to this file")
@click.option("--update-current", is_flag=True, help="If true updates the current kube config")
@click.option("--print", "print_config", is_flag=True, help="Prints the kube config to stdout")
@click.option("--restart-delay", type=float, help="Seconds to wait before restarting forwarding")
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-format", type=click.Choice(["console", "json"]), help="Log format")
@click.pass_context
def connect(
    ctx: click.Context,
    name: str | None,
    namespace: str | None,
    kube_context: str | None,
    pod: str | None,
    server: str | None,
    local_port: int | None,
    address: str | None,
    kube_config: str | None,
    update_current: bool,
    print_config: bool,
    restart_delay: float | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Connect to a virtual cluster.

    Example: vconnect connect test --namespace test
    """
    from vconnect.connect.connector import VirtualClusterConnector

    app: ConnectContext = ctx.obj
    try:
        config = app.load_config(
            name=name,
            namespace=namespace,
            context=kube_context,
            pod=pod,
            server=server,
            local_port=local_port,
            address=address,
            kube_config=kube_config,
            update_current=update_current or None,
            print_config=print_config or None,
            restart_delay=restart_delay,
        )
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e

    if log_level:
        config.logging.level = log_level
    if log_format:
        config.logging.format = log_format
    setup_logging(**config.logging.model_dump())

    app.kube_context = config.context

    with cancel_on_signals() as cancel_event:
        try:
            if not config.namespace:
                config.namespace = app.kube_client.current_namespace()

            connector = VirtualClusterConnector(app.provider, app.transport, config)
            result = connector.connect(cancel_event)
            _write_output(result, config)
            connector.forward(result, cancel_event)

        except OperationCancelledError as e:
            logger.info("connect_cancelled", stage=e.stage)
        except (VConnectError, InterfaceError) as e:
            console.print(f"[red]Error: {e}[/red]", highlight=False)
            log_error(logger, e, operation="connect")
            ctx.exit(1)


def _write_output(result: ConnectResult, config: ConnectConfig) -> None:
    from vconnect.utils.kubeconfig import KubeconfigManager, write_kubeconfig

    if config.update_current:
        context_name = config.context_name
        KubeconfigManager().add_document_context(context_name, result.document)
        console.print(
            f"[green]✓ Successfully created kube context {context_name}. You can access the "
            f"vcluster with `kubectl get namespaces --context {context_name}`[/green]",
            highlight=False,
        )
    elif config.print_config:
        click.echo(result.document.to_yaml(), nl=False)
    else:
        path = write_kubeconfig(result.document, config.kube_config)
        console.print(
            f"[green]✓ Virtual cluster kube config written to: {path}. You can access the "
            f"cluster via `kubectl --kubeconfig {path} get namespaces`[/green]",
            highlight=False,
        )

    if result.tunnel_required:
        console.print(
            f"Forwarding {config.address}:{config.local_port} to "
            f"{result.workload.name}:{result.remote_port} (Ctrl+C to stop)",
            highlight=False,
        )


if __name__ == "__main__":
    cli()
