import pytest

from npdetect.healthchecker_options import (
    CONTAINERD_SERVICE,
    CRI_COMPONENT,
    KUBE_PROXY_COMPONENT,
    KUBELET_COMPONENT,
    HealthCheckerOptions,
    InvalidHealthCheckerOptions,
)

CASES = [
    ("valid component", dict(component=KUBELET_COMPONENT), False),
    ("invalid component", dict(component="wrongComponent"), True),
    ("empty crictl-path with cri",
     dict(component=CRI_COMPONENT, crictl_path="", enable_repair=False), True),
    ("empty systemd-service and repair enabled",
     dict(component=KUBELET_COMPONENT, enable_repair=True, service=""), True),
    ("empty cri socket path",
     dict(component=CRI_COMPONENT, crictl_path="/usr/bin/crictl",
          cri_socket_path=""), True),
    ("complete cri options",
     dict(component=CRI_COMPONENT, crictl_path="/usr/bin/crictl",
          cri_socket_path="/run/containerd/containerd.sock",
          enable_repair=True, service="containerd"), False),
    ("kube-proxy without repair", dict(component=KUBE_PROXY_COMPONENT), False),
]


@pytest.mark.parametrize("name, kwargs, expect_error", CASES, ids=[c[0] for c in CASES])
def test_validate(name, kwargs, expect_error):
    options = HealthCheckerOptions(**kwargs)
    if expect_error:
        with pytest.raises(InvalidHealthCheckerOptions):
            options.validate()
    else:
        assert options.validate() is None


def test_invalid_component_message():
    with pytest.raises(InvalidHealthCheckerOptions, match="not supported"):
        HealthCheckerOptions(component="wrongComponent").validate()


@pytest.mark.parametrize(
    "component, service, wanted",
    [
        (KUBELET_COMPONENT, "", KUBELET_COMPONENT),
        (KUBE_PROXY_COMPONENT, "", KUBE_PROXY_COMPONENT),
        (CRI_COMPONENT, "", CONTAINERD_SERVICE),
        (CRI_COMPONENT, "crio", "crio"),
    ],
)
def test_set_defaults(component, service, wanted):
    options = HealthCheckerOptions(component=component, service=service)
    options.set_defaults()
    assert options.service == wanted


def test_set_defaults_makes_repair_valid():
    options = HealthCheckerOptions(component=KUBELET_COMPONENT, enable_repair=True)
    with pytest.raises(InvalidHealthCheckerOptions):
        options.validate()
    options.set_defaults()
    assert options.service == KUBELET_COMPONENT
    assert options.validate() is None