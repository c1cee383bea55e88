# send_test_email.py
import sys

from app.services.email_service import send_verification_email


def main():
    if len(sys.argv) != 2:
        print("usage: python send_test_email.py <recipient>")
        sys.exit(1)

    print("Sending test verification email...")

    send_verification_email(
        email=sys.argv[1],
        url="http://localhost:3000/verify-email?token=test",
    )

    print("If no errors: email sent! Check your inbox.")


if __name__ == "__main__":
    main()
