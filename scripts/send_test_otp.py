import os
import sys

# Add repository root to path so we can import config/utils
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config import configure_logging, get_settings  # noqa: E402
from utils.otp_service import OtpError, build_otp_service  # noqa: E402


def send_test_otp(email: str) -> int:
    """
    Issue one OTP to `email` through the configured store and transport.

    Useful to check SMTP/Brevo credentials before deploying.
    """
    settings = get_settings()
    configure_logging(settings)
    service = build_otp_service(settings)
    try:
        service.issue(email)
    except OtpError as e:
        print(f"Failed: {e}")
        return 1
    print(f"OTP sent to {email} via {settings.email_provider} (store: {settings.otp_store})")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: python scripts/send_test_otp.py <email>")
        sys.exit(2)
    sys.exit(send_test_otp(sys.argv[1]))
