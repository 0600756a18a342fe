"""Upload batches against a patched storage backend."""
from unittest.mock import patch

import pytest

from app.core.errors import UpstreamProviderError
from app.models import FileUpload
from app.services import uploads
from app.services.uploads import IncomingFile


def _file(name):
    return IncomingFile(filename=name, content_type="text/plain", content=b"hello")


@patch("app.services.storage.delete", return_value=True)
@patch("app.services.storage.put", side_effect=["http://localhost:8000/files/uploads/a.txt", UpstreamProviderError("Failed to store file")])
def test_failed_batch_removes_stored_objects(mock_put, mock_delete, db, make_user, premium_fields):
    user = make_user(**premium_fields)

    with pytest.raises(UpstreamProviderError):
        uploads.save_uploads(db, user, [_file("a.txt"), _file("b.txt")])

    mock_delete.assert_called_once_with("http://localhost:8000/files/uploads/a.txt")
    assert db.query(FileUpload).count() == 0


@patch("app.services.storage.put", side_effect=lambda data, key, content_type: f"http://localhost:8000/files/{key}")
def test_batch_is_recorded_in_order(mock_put, db, make_user, premium_fields):
    user = make_user(**premium_fields)

    records = uploads.save_uploads(db, user, [_file("a.txt"), _file("b.txt")])

    assert [r.filename for r in records] == ["a.txt", "b.txt"]
    assert all(r.file_path.startswith(f"http://localhost:8000/files/uploads/user_{user.id}/") for r in records)


def test_too_many_files(db, make_user, premium_fields):
    with pytest.raises(ValueError, match="Too many files"):
        uploads.save_uploads(db, make_user(**premium_fields), [_file(f"{i}.txt") for i in range(11)])
