from proactive_calls.security import verify_cron_secret


def test_matching_secret():
    assert verify_cron_secret("s3cret", "s3cret") is True


def test_wrong_or_missing_secret():
    assert verify_cron_secret("s3cret!", "s3cret") is False
    assert verify_cron_secret("", "s3cret") is False
    assert verify_cron_secret(None, "s3cret") is False


def test_unset_secret_only_open_in_debug():
    assert verify_cron_secret(None, "") is False
    assert verify_cron_secret(None, "", allow_unset=True) is True
