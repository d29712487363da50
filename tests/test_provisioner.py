from __future__ import annotations

import pytest

from rtp_capture import EndpointProvisioner, MediaKind, ProvisioningError, TrackRequest


def test_provision_single_audio_endpoint(router, settings) -> None:
    endpoints = EndpointProvisioner(settings).provision(router, [TrackRequest("P1")])

    assert len(endpoints) == 1
    endpoint = endpoints[0]
    assert endpoint.kind is MediaKind.AUDIO
    assert endpoint.port == 20000
    assert endpoint.codec.ssrc == 1111

    transport = router.transports[0]
    assert transport.options == {
        "listen_ip": "127.0.0.1",
        "announced_ip": None,
        "rtcp_mux": True,
        "comedia": False,
    }
    assert transport.consume_options[0]["paused"] is False
    assert transport.consume_options[0]["rtp_capabilities"] is router.rtp_capabilities
    assert transport.connected_to == ("127.0.0.1", 20000)


def test_provision_pair_uses_fixed_ports(router, settings) -> None:
    endpoints = EndpointProvisioner(settings).provision(
        router,
        [TrackRequest("A1", MediaKind.AUDIO), TrackRequest("V1", MediaKind.VIDEO)],
    )

    assert [(endpoint.kind, endpoint.port) for endpoint in endpoints] == [
        (MediaKind.AUDIO, 20000),
        (MediaKind.VIDEO, 20002),
    ]
    assert [transport.connected_to for transport in router.transports] == [
        ("127.0.0.1", 20000),
        ("127.0.0.1", 20002),
    ]


def test_video_failure_closes_audio_endpoint(router, settings) -> None:
    router.failing_producers.add("V1")

    with pytest.raises(ProvisioningError):
        EndpointProvisioner(settings).provision(
            router,
            [TrackRequest("A1", MediaKind.AUDIO), TrackRequest("V1", MediaKind.VIDEO)],
        )

    audio_transport, video_transport = router.transports
    assert audio_transport.consumers[0].close_calls == 1
    assert audio_transport.close_calls == 1
    assert video_transport.close_calls == 1
    assert video_transport.connected_to is None


def test_kind_mismatch_is_rejected_and_released(router, settings) -> None:
    with pytest.raises(ProvisioningError, match="expected video"):
        EndpointProvisioner(settings).provision(router, [TrackRequest("A1", MediaKind.VIDEO)])

    transport = router.transports[0]
    assert transport.consumers[0].closed
    assert transport.closed


def test_two_tracks_of_the_same_kind_collide(router, settings) -> None:
    with pytest.raises(ProvisioningError, match="collide"):
        EndpointProvisioner(settings).provision(router, [TrackRequest("P1"), TrackRequest("A1")])

    assert all(transport.close_calls == 1 for transport in router.transports)
    assert all(consumer.close_calls == 1 for consumer in router.consumers)


def test_transport_refusal_is_wrapped(router, settings) -> None:
    router.refuse_transports = True

    with pytest.raises(ProvisioningError, match="no ports available"):
        EndpointProvisioner(settings).provision(router, [TrackRequest("P1")])


def test_endpoint_close_is_idempotent(router, settings) -> None:
    (endpoint,) = EndpointProvisioner(settings).provision(router, [TrackRequest("P1")])

    endpoint.close()
    endpoint.close()

    assert endpoint.closed
    assert router.consumers[0].close_calls == 1
    assert router.transports[0].close_calls == 1
