from dataclasses import replace

import pytest

from hypervol.adapters.abi_ethabi import EthAbiDecoder
from hypervol.application.decoder import LogDecoderAdapter
from hypervol.domain.errors import InvalidAddressFormat

from helpers import AAA, BBB, CCC, TOKEN, transfer_log

STRANGER = "0x" + "d" * 40


def test_decode_isolation(decoder):
    good = transfer_log(AAA, BBB, 500, log_index=0)
    orphan = transfer_log(AAA, BBB, 999, address=STRANGER, log_index=1)
    batch = decoder.decode_batch([orphan, good])
    assert [d.log for d in batch.decoded] == [good]
    assert [(f.log, f.kind) for f in batch.failures] == [(orphan, "NoAbiForAddress")]
    assert batch.failure_counts() == {"NoAbiForAddress": 1}


def test_mismatch_does_not_stop_batch(decoder):
    broken = replace(transfer_log(AAA, BBB, 1, log_index=0), data="0x00")
    after = transfer_log(BBB, CCC, 2, log_index=1)
    batch = decoder.decode_batch([broken, after])
    assert [d.body[0].value for d in batch.decoded] == [2]
    assert batch.failure_counts() == {"DecodeTypeMismatch": 1}


def test_preserves_page_order(decoder):
    logs = [transfer_log(AAA, BBB, n, log_index=n) for n in (3, 1, 2)]
    assert [d.body[0].value for d in decoder.decode_batch(logs).decoded] == [3, 1, 2]


def test_abi_keys_normalized(erc20_abi):
    adapter = LogDecoderAdapter({TOKEN.upper().replace("0X", "0x"): erc20_abi}, EthAbiDecoder())
    assert adapter.addresses == (TOKEN,)
    assert len(adapter.decode_batch([transfer_log(AAA, BBB, 1)]).decoded) == 1


def test_one_definition_many_addresses(erc20_abi):
    adapter = LogDecoderAdapter({TOKEN: erc20_abi, STRANGER: erc20_abi}, EthAbiDecoder())
    batch = adapter.decode_batch([transfer_log(AAA, BBB, 1), transfer_log(AAA, BBB, 2, address=STRANGER)])
    assert not batch.failures and len(batch.decoded) == 2


def test_bad_abi_key_rejected(erc20_abi):
    with pytest.raises(InvalidAddressFormat):
        LogDecoderAdapter({"0xdead": erc20_abi}, EthAbiDecoder())


@pytest.mark.asyncio
async def test_decode_page_offloads_and_matches_sync(decoder):
    logs = [transfer_log(AAA, BBB, 5), transfer_log(AAA, BBB, 6, address=STRANGER, log_index=1)]
    batch = await decoder.decode_page(logs)
    assert len(batch.decoded) == 1 and len(batch.failures) == 1


@pytest.mark.asyncio
async def test_decode_page_empty(decoder):
    batch = await decoder.decode_page([])
    assert batch.decoded == [] and batch.failures == []
