from tinynet.address import Address
from tinynet.tcp_config import FdAdapterConfig, TCPConfig


def test_tcp_config_defaults():
    cfg = TCPConfig()
    assert cfg.rt_timeout == 1000
    assert cfg.recv_capacity == 64000
    assert cfg.send_capacity == 64000
    assert cfg.isn == 137


def test_tcp_config_override():
    cfg = TCPConfig(rt_timeout=100, recv_capacity=10)
    assert cfg.rt_timeout == 100
    assert cfg.recv_capacity == 10
    assert cfg.send_capacity == TCPConfig.DEFAULT_CAPACITY


def test_adapter_config_defaults():
    cfg = FdAdapterConfig()
    assert cfg.source.ipv4_numeric() == 0
    assert cfg.source.port() == 0
    assert cfg.destination.ipv4_numeric() == 0
    assert cfg.destination.port() == 0
    assert cfg.loss_rate_dn == 0
    assert cfg.loss_rate_up == 0


def test_adapter_configs_are_independent():
    first = FdAdapterConfig()
    second = FdAdapterConfig()
    first.source = Address("10.0.0.1", 80)
    first.loss_rate_up = 5
    assert second.source == Address("0", 0)
    assert second.loss_rate_up == 0
    assert first.source.port() == 80