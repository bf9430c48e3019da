import json

from asgiref.sync import async_to_sync

from registry.realtime.consumers import UpdatesConsumer


def _consumer(tenant_id):
    consumer = UpdatesConsumer()
    consumer.tenant_id = tenant_id
    consumer.sent = []

    async def send(text_data=None, bytes_data=None, close=False):
        consumer.sent.append(text_data)

    consumer.send = send
    return consumer


def test_merge_event_reaches_own_tenant_only():
    event = {"type": "patient.merged", "tenantId": "t1", "primaryId": "p1", "duplicateId": "d1"}
    mine, theirs = _consumer("t1"), _consumer("t2")

    async_to_sync(mine.patient_merged)(event)
    async_to_sync(theirs.patient_merged)(event)

    assert [json.loads(m) for m in mine.sent] == [event]
    assert theirs.sent == []
