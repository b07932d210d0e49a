from libshare.core.security import PasslibPasswordHasher


def test_hash_is_salted_and_verifiable():
    hasher = PasslibPasswordHasher()
    first = hasher.hash("pw1")
    second = hasher.hash("pw1")

    assert first != "pw1"
    assert first != second
    assert hasher.verify("pw1", first)
    assert hasher.verify("pw1", second)
    assert not hasher.verify("pw2", first)


def test_plaintext_or_empty_hash_never_verifies():
    hasher = PasslibPasswordHasher()
    assert not hasher.verify("pw1", "pw1")
    assert not hasher.verify("pw1", "")
