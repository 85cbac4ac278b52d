import time
import subprocess
import httpx
import sys
import os
import signal

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/paragliding/api"
ADMIN_API_PREFIX = "/paragliding/admin/api"
SERVER_CMD = [sys.executable, "-m", "uvicorn", "paragliding.app.main:app", "--host", "127.0.0.1", "--port", "8000"]

# Any reachable .igc file works; pass one as the first argument to override
TRACK_URL = os.getenv(
    "TRACK_URL",
    "http://skypolaris.org/wp-content/uploads/IGS%20Files/Madrid%20to%20Jerez.igc",
)


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for i in range(retries):
        try:
            resp = httpx.get(url)
            if resp.status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False


def run_verification(track_url: str):
    # 1. Start Server (First Run)
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = subprocess.Popen(
        SERVER_CMD,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env={**os.environ, "STORE_BACKEND": "sql"}
    )

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        # 2. Register Track
        print("\n--- [Step 2] Registering Track (Persistence Test) ---")
        resp = httpx.post(f"{BASE_URL}{API_PREFIX}/track", json={"url": track_url}, timeout=30)

        if resp.status_code != 200:
            print(f"❌ Registration Failed: {resp.status_code} {resp.text}")
            raise Exception("Registration failed")

        track_id = resp.json()["id"]
        before = httpx.get(f"{BASE_URL}{API_PREFIX}/track/{track_id}").json()
        latest_before = httpx.get(f"{BASE_URL}{API_PREFIX}/ticker/latest").text
        print(f"✅ Track Registered as {track_id}")
        print(before)

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        proc.send_signal(signal.SIGTERM)
        proc.wait()

    time.sleep(2) # Wait for port release

    # 3. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = subprocess.Popen(
        SERVER_CMD,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env={**os.environ, "STORE_BACKEND": "sql"}
    )

    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        # 4. Re-read Track
        print("\n--- [Step 5] Reading Track (Post-Restart) ---")
        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/track/{track_id}")

        if resp.status_code == 200 and resp.json() == before:
            print("✅ Track Persisted")
        else:
            print(f"❌ Track Lookup Failed (Persistence Issue?): {resp.status_code} {resp.text}")
            raise Exception("Track missing after restart")

        # 5. Re-register is idempotent
        print("\n--- [Step 6] Verifying Idempotent Registration ---")
        resp = httpx.post(f"{BASE_URL}{API_PREFIX}/track", json={"url": track_url}, timeout=30)
        if resp.status_code == 200 and resp.json()["id"] == track_id:
            print("✅ Same id returned")
        else:
            print(f"❌ Unexpected registration result: {resp.status_code} {resp.text}")

        # 6. Ticker cursor survives the restart
        print("\n--- [Step 7] Verifying Ticker ---")
        latest_after = httpx.get(f"{BASE_URL}{API_PREFIX}/ticker/latest").text
        count = httpx.get(f"{BASE_URL}{ADMIN_API_PREFIX}/tracks_count").text
        print(f"Latest: {latest_after} (before restart: {latest_before}), count: {count}")
        if latest_after == latest_before:
            print("✅ Ticker Verified")
        else:
            print("⚠️ Latest timestamp changed (another writer?)")

    finally:
        print("\n--- [Step 8] Stopping Server ---")
        proc2.send_signal(signal.SIGTERM)
        proc2.wait()

if __name__ == "__main__":
    run_verification(sys.argv[1] if len(sys.argv) > 1 else TRACK_URL)
