from memocurve.infrastructure.blob_store import JsonBlobStore


def test_missing_key(tmp_path):
    blobs = JsonBlobStore(tmp_path / "nowhere")
    assert blobs.get("memocurve_data") is None
    assert blobs.keys() == []
    assert blobs.delete("memocurve_data") is False


def test_set_get_delete(tmp_path):
    blobs = JsonBlobStore(tmp_path / "data")
    blobs.set("memocurve_data", "[]")
    assert (tmp_path / "data" / "memocurve_data.json").read_text(encoding="utf-8") == "[]"
    assert blobs.get("memocurve_data") == "[]"

    blobs.set("memocurve_data", '[{"id": "x"}]')
    assert blobs.get("memocurve_data") == '[{"id": "x"}]'
    assert blobs.keys() == ["memocurve_data"]

    assert blobs.delete("memocurve_data") is True
    assert blobs.get("memocurve_data") is None


def test_no_temp_files_left_behind(tmp_path):
    blobs = JsonBlobStore(tmp_path)
    for i in range(3):
        blobs.set("memocurve_config", f'{{"n": {i}}}')
    assert [p.name for p in tmp_path.iterdir()] == ["memocurve_config.json"]
