import pytest

pytestmark = pytest.mark.integration

PAYLOAD = {
    "referenceImage": "data:image/png;base64,AAAA",
    "productImage": "data:image/png;base64,BBBB",
    "promptTemplate": "product-integration",
}


def test_generate_charges_one_credit(client, auth_headers):
    headers = auth_headers()
    resp = client.post("/api/generate", headers=headers, json=PAYLOAD)
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["imageUrl"].startswith("/images/mock_generations/")
    assert data["creditsUsed"] == 1
    assert data["newBalance"] == 9
    assert data["metadata"]["model"] == "mock-gpt4o"

    history = client.get("/api/generations/history", headers=headers).json()["data"]
    assert history["pagination"]["totalItems"] == 1
    [gen] = history["generations"]
    assert gen["id"] == data["generationId"]
    assert gen["imageUrl"] == data["imageUrl"]
    assert gen["model"] == "mock-gpt4o"
    assert gen["status"] == "completed"


def test_generate_missing_input(client, auth_headers):
    headers = auth_headers()
    resp = client.post("/api/generate", headers=headers, json={"referenceImage": "data:image/png;base64,AAAA"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "MISSING_INPUT"
    assert client.get("/api/credits/balance", headers=headers).json()["data"]["credits"] == 10


def test_generate_without_credits(client, auth_headers):
    headers = auth_headers()
    client.post("/api/credits/deduct", headers=headers, json={"credits": 10})
    resp = client.post("/api/generate", headers=headers, json=PAYLOAD)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "INSUFFICIENT_CREDITS"


def test_generate_rejects_tiny_dimensions(client, auth_headers):
    resp = client.post("/api/generate", headers=auth_headers(), json=dict(PAYLOAD, width=10))
    assert resp.status_code == 422


def test_model_info(client):
    data = client.get("/api/generate/model").json()["data"]
    assert data["name"] == "Mock GPT-4o"
    assert data["creditCost"] == 1
    assert data["available"] is True


def test_prompt_templates(client):
    data = client.get("/api/generate/prompt-templates").json()["data"]
    ids = [t["id"] for t in data]
    assert "product-integration" in ids
    assert "custom" in ids
    assert all("defaultValues" in t for t in data)


def test_generation_history_paging(client, auth_headers):
    headers = auth_headers()
    for _ in range(3):
        assert client.post("/api/generate", headers=headers, json=PAYLOAD).status_code == 200

    page = client.get("/api/generations/history?page=2&limit=2&sort=asc", headers=headers).json()["data"]
    assert len(page["generations"]) == 1
    assert page["pagination"] == {
        "page": 2, "limit": 2, "totalItems": 3, "totalPages": 2, "hasNextPage": False, "hasPrevPage": True,
    }


@pytest.mark.parametrize("query", ["page=0", "limit=0", "limit=101", "sort=sideways"])
def test_generation_history_validation(client, auth_headers, query):
    resp = client.get(f"/api/generations/history?{query}", headers=auth_headers())
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_generate_accepts_image_descriptions(client, auth_headers):
    headers = auth_headers()
    resp = client.post("/api/generate", headers=headers, json=dict(PAYLOAD, productDescription="a green water bottle"))
    assert resp.status_code == 200

    [gen] = client.get("/api/generations/history", headers=headers).json()["data"]["generations"]
    assert gen["promptData"]["prompt"].endswith("My product image shows: a green water bottle")
