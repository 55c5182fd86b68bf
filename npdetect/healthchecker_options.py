"""Options of the component health checker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

KUBELET_COMPONENT = "kubelet"
DOCKER_COMPONENT = "docker"
CRI_COMPONENT = "cri"
KUBE_PROXY_COMPONENT = "kube-proxy"
CONTAINERD_SERVICE = "containerd"

SUPPORTED_COMPONENTS = frozenset(
    {KUBELET_COMPONENT, DOCKER_COMPONENT, CRI_COMPONENT, KUBE_PROXY_COMPONENT}
)


class InvalidHealthCheckerOptions(ValueError):
    """Raised when health checker options cannot be used."""


@dataclass
class HealthCheckerOptions:
    """Settings describing which component to check and how."""

    component: str = ""
    service: str = ""
    enable_repair: bool = False
    crictl_path: str = ""
    cri_socket_path: str = ""
    cri_timeout: timedelta = timedelta(0)
    cooldown_time: timedelta = timedelta(0)
    loopback_time: timedelta = timedelta(0)
    health_check_timeout: timedelta = timedelta(0)
    log_patterns: list[str] = field(default_factory=list)

    def validate(self) -> None:
        """Raise InvalidHealthCheckerOptions unless the options are consistent."""
        if self.component not in SUPPORTED_COMPONENTS:
            raise InvalidHealthCheckerOptions(
                "the component specified is not supported. "
                "Supported components are : <kubelet/docker/cri/kube-proxy>"
            )
        if self.enable_repair and not self.service:
            raise InvalidHealthCheckerOptions(
                "service cannot be empty when repair is enabled"
            )
        if self.component != CRI_COMPONENT:
            return
        if not self.crictl_path:
            raise InvalidHealthCheckerOptions(
                "the crictl-path cannot be empty for cri component"
            )
        if not self.cri_socket_path:
            raise InvalidHealthCheckerOptions(
                "the cri-socket-path cannot be empty for cri component"
            )

    def set_defaults(self) -> None:
        """Derive the service from the component when none was given."""
        if self.service:
            return
        if self.component != CRI_COMPONENT:
            self.service = self.component
        else:
            self.service = CONTAINERD_SERVICE