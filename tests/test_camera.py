import asyncio

import aiohttp

from range_dashboard.backend import camera, config


def test_start_session(fake_http, response):
    fake_http.queue(response(json_data={"session_id": "cam-1", "status": "started"}))
    result = asyncio.run(camera.start_session(fps=2))
    assert result == {"success": True, "session_id": "cam-1", "status": "started"}
    method, url, kwargs = fake_http.calls[0]
    assert (method, url) == ("POST", f"{config.CAMERA_SERVER_URL}/session/start")
    assert kwargs["json"] == {"fps": 2, "force": True}
    assert kwargs["headers"] == config.CAMERA_HEADERS


def test_start_session_failure(fake_http, response):
    fake_http.queue(response(status=500, body=b"busy"))
    assert asyncio.run(camera.start_session())["success"] is False

    fake_http.error = aiohttp.ClientError("refused")
    assert asyncio.run(camera.start_session())["success"] is False


def test_close_session(fake_http, response):
    fake_http.queue(response(json_data={"stopped": True}))
    assert asyncio.run(camera.close_session()) == {"success": True, "status": "stopped"}


def test_next_frame_no_content(fake_http, response):
    fake_http.queue(response(status=204))
    assert asyncio.run(camera.next_frame(since=3)) is None
    _, url, kwargs = fake_http.calls[0]
    assert url.endswith("/frame/next")
    assert kwargs["params"] == {"timeout": str(config.CAMERA_NEXT_FRAME_TIMEOUT), "since": "3"}


def test_next_frame_returns_frame(fake_http, response):
    fake_http.queue(response(body=b"\xff\xd8data\xff\xd9",
                             headers={"X-Frame-Id": "7", "X-Session-Id": "cam-1"}))
    frame = asyncio.run(camera.next_frame())
    assert frame.frame_id == 7
    assert frame.session_id == "cam-1"
    assert frame.data.startswith(b"\xff\xd8")
    assert camera.get_latest_frame() is frame
    assert "since" not in fake_http.calls[0][2]["params"]


def test_next_frame_error_is_none(fake_http, response):
    fake_http.queue(response(status=502))
    assert asyncio.run(camera.next_frame()) is None

    fake_http.error = aiohttp.ClientError("down")
    assert asyncio.run(camera.next_frame()) is None


def test_latest_frame(fake_http, response):
    fake_http.queue(response(body=b"img"))
    assert asyncio.run(camera.latest_frame()) == b"img"
    fake_http.queue(response(status=404))
    assert asyncio.run(camera.latest_frame()) is None
