def test_register_login_verify(api):
    registered = api.post("/auth/register", json={"email": "a@b.com", "password": "secret1", "name": "Ann"})
    assert registered.status_code == 201
    body = registered.json()
    assert body["success"] is True
    assert body["user"]["email"] == "a@b.com"
    assert body["token"]

    logged_in = api.post("/auth/login", json={"email": "a@b.com", "password": "secret1"})
    assert logged_in.status_code == 200
    token = logged_in.json()["token"]

    verified = api.get("/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert verified.status_code == 200
    assert verified.json()["user"]["id"] == body["user"]["id"]


def test_auth_errors_use_error_envelope(api):
    api.post("/auth/register", json={"email": "a@b.com", "password": "secret1", "name": "Ann"})

    duplicate = api.post("/auth/register", json={"email": "a@b.com", "password": "secret1", "name": "Ann"})
    assert duplicate.status_code == 400
    assert duplicate.json() == {"success": False, "error": "User with this email already exists"}

    wrong = api.post("/auth/login", json={"email": "a@b.com", "password": "nope123"})
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "Invalid email or password"

    missing = api.get("/auth/verify")
    assert missing.status_code == 401
    assert missing.json()["error"] == "No token provided"
