import pytest

from hypervol.adapters.abi_ethabi import EthAbiDecoder, default_erc20_abi
from hypervol.application.decoder import LogDecoderAdapter

from helpers import TOKEN


@pytest.fixture
def erc20_abi():
    return default_erc20_abi()


@pytest.fixture
def decoder(erc20_abi):
    return LogDecoderAdapter({TOKEN: erc20_abi}, EthAbiDecoder())
