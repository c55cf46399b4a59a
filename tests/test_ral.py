from thermogestion.services.ral import get_color, normalize_code, search_colors


def test_normalize_code():
    assert normalize_code("RAL 7016") == "7016"
    assert normalize_code(" ral7016 ") == "7016"
    assert normalize_code("9005") == "9005"


def test_get_color():
    color = get_color("RAL 7016")
    assert color["name"] == "Gris anthracite"
    assert color["hex"] == "#293133"
    assert color["family"] == "Gris"
    assert get_color("1234") is None


def test_search_by_code_prefix_and_accentless_name():
    assert all(c["code"].startswith("90") for c in search_colors("90"))
    assert any(c["code"] == "9005" for c in search_colors("noir fonce"))
    assert any(c["code"] == "5015" for c in search_colors("bleu"))


def test_search_family_and_limit():
    greys = search_colors(family="7", limit=500)
    assert greys and all(c["code"].startswith("7") for c in greys)
    assert len(search_colors(limit=3)) == 3


def test_ral_endpoints(client):
    assert client.get("/api/ral/7016").json()["name"] == "Gris anthracite"
    assert client.get("/api/ral/0000").status_code == 404
    resp = client.get("/api/ral", params={"q": "blanc"})
    assert resp.status_code == 200
