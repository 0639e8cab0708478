"""End-to-end smoke check for request notifications over WebSocket.

Prerequisites:
1. The ASGI server must be running (`python manage.py runserver`, daphne is installed).
2. Install the scripts extra once: `pip install -e .[scripts]`.

The script will:
- Ensure a demo passenger and driver exist (auto-register if missing).
- Publish a ride as the driver.
- Open the driver's notification socket with the JWT access token.
- Request a seat as the passenger and wait for the ``request_created`` event.
- Accept the request and print the passenger-side result.
"""

from __future__ import annotations

import json
import os
import queue
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Tuple

import requests
import websocket  # type: ignore

BASE_URL = os.environ.get("RIDESHARE_BASE_URL", "http://127.0.0.1:8000")
API_ROOT = f"{BASE_URL}/api"
AUTH_API = f"{API_ROOT}/auth"

PASSENGER_CREDS = {
    "username": "ws_demo_passenger",
    "password": "demo12345",
    "phone_number": "9000000000",
}

DRIVER_CREDS = {
    "username": "ws_demo_driver",
    "password": "demo12345",
    "phone_number": "9000000001",
}


def _login_or_register(session: requests.Session, payload: Dict, role: str) -> Tuple[Dict, str]:
    login_resp = session.post(
        f"{AUTH_API}/login/",
        json={"username": payload["username"], "password": payload["password"]},
        timeout=10,
    )

    if login_resp.status_code != 200:
        register_body = {
            "username": payload["username"],
            "email": f"{payload['username']}@example.com",
            "password": payload["password"],
            "role": role,
            "phone_number": payload["phone_number"],
        }
        reg_resp = session.post(f"{AUTH_API}/register/", json=register_body, timeout=10)
        reg_resp.raise_for_status()
        login_resp = session.post(
            f"{AUTH_API}/login/",
            json={"username": payload["username"], "password": payload["password"]},
            timeout=10,
        )

    login_resp.raise_for_status()
    data = login_resp.json()
    token = data["tokens"]["access"]
    session.headers.update({"Authorization": f"Bearer {token}"})
    return data["user"], token


def _publish_ride(driver_session: requests.Session) -> Dict:
    body = {
        "origin": "Connaught Place",
        "destination": "India Gate",
        "departure_at": (datetime.now(timezone.utc) + timedelta(hours=2)).isoformat(),
        "total_seats": 3,
        "price_per_seat": 15000,
    }
    resp = driver_session.post(f"{API_ROOT}/driver/rides/", json=body, timeout=10)
    resp.raise_for_status()
    ride = resp.json()
    print(f"[HTTP] Ride #{ride['id']} published with {ride['available_seats']} seats")
    return ride


def _open_socket(token: str, ready_evt: threading.Event, queue_out: queue.Queue) -> None:
    ws_url = BASE_URL.replace("http", "ws") + f"/ws/notifications/?token={token}"

    def on_open(ws):  # type: ignore[no-untyped-def]
        print("[WS] Connected to notification channel")
        ready_evt.set()

    def on_message(ws, message):  # type: ignore[no-untyped-def]
        payload = json.loads(message)
        print(f"[WS] Received payload: {payload}")
        if payload.get("type") == "notification":
            queue_out.put(payload)
            ws.close()

    def on_error(ws, error):  # type: ignore[no-untyped-def]
        print(f"[WS] Error: {error}")
        ready_evt.set()

    def on_close(_ws, *_):  # type: ignore[no-untyped-def]
        print("[WS] Connection closed")

    ws_app = websocket.WebSocketApp(
        ws_url,
        on_open=on_open,
        on_message=on_message,
        on_error=on_error,
        on_close=on_close,
    )

    ws_app.run_forever()


def main() -> None:
    passenger_session = requests.Session()
    driver_session = requests.Session()

    print("[HTTP] Logging in / registering demo accounts ...")
    passenger, _ = _login_or_register(passenger_session, PASSENGER_CREDS, role="passenger")
    driver, driver_token = _login_or_register(driver_session, DRIVER_CREDS, role="driver")
    print(f"[HTTP] Passenger #{passenger['id']} + Driver #{driver['id']} ready")

    ride = _publish_ride(driver_session)

    ready_evt = threading.Event()
    message_queue: queue.Queue = queue.Queue()
    ws_thread = threading.Thread(
        target=_open_socket,
        args=(driver_token, ready_evt, message_queue),
        daemon=True,
    )
    ws_thread.start()

    if not ready_evt.wait(timeout=5):
        raise TimeoutError("Driver WebSocket failed to connect within 5 seconds")

    resp = passenger_session.post(
        f"{API_ROOT}/passenger/rides/{ride['id']}/request/",
        json={"seats": 2, "message": "Two of us"},
        timeout=10,
    )
    resp.raise_for_status()
    ride_request = resp.json()
    print(f"[HTTP] Passenger request #{ride_request['id']} is {ride_request['status']}")

    try:
        payload = message_queue.get(timeout=30)
        print("[RESULT] Driver notified:", payload.get("kind"), "request", payload.get("request_id"))
    except queue.Empty:
        raise TimeoutError("Driver WebSocket did not receive a notification within 30 seconds")

    resp = driver_session.post(f"{API_ROOT}/driver/requests/{ride_request['id']}/accept/", timeout=10)
    resp.raise_for_status()
    print(f"[HTTP] Accepted; ride has {resp.json()['available_seats']} seat(s) left")

    print("[DONE] End-to-end WebSocket check completed.")


if __name__ == "__main__":
    main()
