import os
import stat

import pytest

from mellon.token_store import CorruptStore, IoFailure, TokenStore, parse_records
from mellon.tokens import generate_secret


def test_missing_file_loads_as_empty(store, store_path):
    assert store.load() == {}
    assert not store_path.exists()


def test_save_then_load(store, store_path):
    records = {"alpha": generate_secret(), "beta:with:colons": generate_secret()}
    store.save(records)

    assert store.load() == records
    lines = store_path.read_text(encoding="utf-8").splitlines()
    assert lines == [f"{label}:{secret}" for label, secret in records.items()]


def test_save_creates_private_file_and_leaves_no_temp_files(store, store_path):
    store.save({"alpha": generate_secret()})

    mode = stat.S_IMODE(os.stat(store_path).st_mode)
    assert mode == 0o600
    assert sorted(os.listdir(store_path.parent)) == [store_path.name]


def test_save_replaces_previous_content(store):
    store.save({"alpha": generate_secret(), "beta": generate_secret()})
    replacement = {"gamma": generate_secret()}
    store.save(replacement)
    assert store.load() == replacement


def test_save_refuses_duplicate_secrets(store, store_path):
    secret = generate_secret()
    with pytest.raises(ValueError):
        store.save({"alpha": secret, "beta": secret})
    assert not store_path.exists()


def test_blank_lines_are_ignored():
    secret = generate_secret()
    assert parse_records(f"\nalpha:{secret}\n\n") == {"alpha": secret}


@pytest.mark.parametrize(
    "content",
    [
        "alpha\n",
        "alpha:tooshort\n",
        ":{s1}\n",
        "alpha:{s1}\nalpha:{s2}\n",
        "alpha:{s1}\nbeta:{s1}\n",
    ],
)
def test_malformed_content_is_rejected(content):
    content = content.format(s1=generate_secret(), s2=generate_secret())
    with pytest.raises(CorruptStore):
        parse_records(content)


def test_truncated_file_is_rejected(store, store_path):
    """A file cut off mid-record must not load as a partial token set."""

    store.save({"alpha": generate_secret(), "beta": generate_secret()})
    data = store_path.read_bytes()
    store_path.write_bytes(data[:-10])

    with pytest.raises(CorruptStore):
        store.load()


def test_corrupt_store_message_does_not_leak_secrets(store, store_path):
    secret = generate_secret()
    store_path.parent.mkdir(parents=True)
    store_path.write_text(f"alpha:{secret}\nalpha:{generate_secret()}\n", encoding="utf-8")

    with pytest.raises(CorruptStore) as excinfo:
        store.load()
    assert secret not in str(excinfo.value)


def test_non_utf8_file_is_corrupt(store, store_path):
    store_path.parent.mkdir(parents=True)
    store_path.write_bytes(b"alpha:\xff\xfe\n")
    with pytest.raises(CorruptStore):
        store.load()


def test_unreadable_path_raises_io_failure(tmp_path):
    directory = tmp_path / "actually-a-directory"
    directory.mkdir()
    with pytest.raises(IoFailure):
        TokenStore(directory).load()


def test_unwritable_location_raises_io_failure(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(IoFailure):
        TokenStore(blocker / "tokens").save({"alpha": generate_secret()})


def test_contains(store):
    secret = generate_secret()
    store.save({"alpha": secret, "beta": generate_secret()})
    assert store.contains(secret)
    assert not store.contains(generate_secret())
    assert not store.contains(secret[:-1])
