import errno

import pytest

from canardio.frame import CanDriverError
from canardio.linux import LinuxCAN, open_can


@pytest.mark.parametrize("name", ["mcast", "mcastX", "mcast:12", "mcast:-3"])
def test_open_can_routes_mcast_names(name):
    with pytest.raises(CanDriverError) as info:
        open_can(name)
    assert info.value.errno == errno.EINVAL


def test_open_can_routes_other_names_to_socketcan():
    with pytest.raises(CanDriverError) as info:
        open_can("x" * 20)
    assert info.value.errno == errno.EINVAL


@pytest.mark.parametrize("name", ["mcast", "mcast:10", "y" * 16])
def test_linux_can_propagates_errors(name):
    with pytest.raises(CanDriverError) as info:
        LinuxCAN(name)
    assert info.value.errno == errno.EINVAL


def test_linux_can_canfd_flag_propagates_errors():
    with pytest.raises(CanDriverError) as info:
        LinuxCAN("mcastbus", canfd=True)
    assert info.value.errno == errno.EINVAL