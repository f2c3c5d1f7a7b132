from analytics_api.auth.passwords import hash_password, verify_password


def test_hash_round_trip() -> None:
    password_hash = hash_password('correct horse')

    assert password_hash != 'correct horse'
    assert verify_password('correct horse', password_hash)
    assert not verify_password('wrong horse', password_hash)


def test_overlong_password_never_matches() -> None:
    password_hash = hash_password('a' * 72)

    assert not verify_password('a' * 73, password_hash)


def test_malformed_hash_never_matches() -> None:
    assert not verify_password('secret', 'not-a-bcrypt-hash')
    assert not verify_password('secret', '')
