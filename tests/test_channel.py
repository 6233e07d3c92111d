import asyncio
import pytest

from bwmeter.channel import ByteCountChannel


@pytest.mark.asyncio
async def test_send_blocks_until_received():
    channel = ByteCountChannel()
    send_task = asyncio.create_task(channel.send(100))

    await asyncio.sleep(0.05)
    assert not send_task.done()

    assert await channel.receive() == 100
    await asyncio.wait_for(send_task, timeout=1)


@pytest.mark.asyncio
async def test_counts_are_delivered_in_order():
    channel = ByteCountChannel()
    values = [5, 1, 4, 1, 5, 9, 2, 6]

    async def produce():
        for value in values:
            await channel.send(value)

    producer = asyncio.create_task(produce())
    received = [await channel.receive() for _ in values]
    await asyncio.wait_for(producer, timeout=1)

    assert received == values


@pytest.mark.asyncio
async def test_producer_is_never_more_than_one_count_ahead():
    channel = ByteCountChannel()
    sent = []

    async def produce():
        for value in range(10):
            await channel.send(value)
            sent.append(value)

    producer = asyncio.create_task(produce())
    await asyncio.sleep(0.05)
    assert sent == []

    assert await channel.receive() == 0
    await asyncio.sleep(0.05)
    assert sent == [0]

    producer.cancel()
    try:
        await producer
    except asyncio.CancelledError:
        pass
