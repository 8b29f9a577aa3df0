"""Point the kube config of a virtual cluster at the address the client will use."""

from dataclasses import dataclass

from vconnect.core.exceptions import ConfigurationError
from vconnect.core.models import CredentialDocument

SECURE_SCHEME = "https://"


@dataclass
class RewriteResult:
    """Rewritten document plus what is needed to reach the server."""

    document: CredentialDocument
    server: str
    remote_port: int | None = None

    @property
    def tunnel_required(self) -> bool:
        """Whether traffic has to go through a local port forward."""
        return self.remote_port is not None


class CredentialRewriter:
    """Rewrites the server address of the only cluster entry of a kube config."""

    def rewrite(
        self,
        document: CredentialDocument,
        server: str | None = None,
        local_port: int = 8443,
    ) -> RewriteResult:
        """Rewrite document in place.

        With a server, the cluster server is replaced by it (https:// is added if
        missing). Without one, the port of the existing server address is swapped
        for local_port and the replaced port is returned for the tunnel.

        Raises:
            ConfigurationError: If the document has not exactly one cluster or the
                server address is not of the form scheme://host:port
        """
        _, cluster = document.sole_cluster()

        if server:
            if not server.startswith(SECURE_SCHEME):
                server = SECURE_SCHEME + server
            cluster.server = server
            return RewriteResult(document=document, server=server)

        parts = cluster.server.split(":")
        if len(parts) != 3:
            raise ConfigurationError(f"unexpected server in kubeconfig: {cluster.server}")

        try:
            remote_port = int(parts[2])
        except ValueError as e:
            raise ConfigurationError(f"unexpected server in kubeconfig: {cluster.server}") from e

        parts[2] = str(local_port)
        cluster.server = ":".join(parts)
        return RewriteResult(document=document, server=cluster.server, remote_port=remote_port)
