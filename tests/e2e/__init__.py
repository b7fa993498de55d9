"""
mailflow live scenarios.

These tests drive the real webmail in a browser and are skipped unless
``--run-live`` is passed or ``MAILFLOW_LIVE=true`` is set.

Test Modules:
    - test_gmail: sign-in, rejected sign-in, compose/send/verify and the
      missing-recipient validation scenario

Running Tests:
    # Run the live scenarios
    pytest tests/e2e/ --run-live

    # Same, through the command-line entry point
    mailflow run

    # Visible Chrome window (helps when automated sign-in is blocked)
    pytest tests/e2e/ --run-live --headed --browser-channel chrome

    # Slow motion
    E2E_SLOW_MO=500 pytest tests/e2e/ --run-live

Environment Variables:
    GMAIL_USERNAME: Account to sign in with
    GMAIL_PASSWORD: Account password
    RECIPIENT_EMAIL: Recipient for every outgoing message (default: the
        placeholder in the data file resolves to empty)
    GMAIL_HANDLE_INTERSTITIALS: Dismiss optional sign-in prompts (default: true)
    E2E_HEADLESS: Run in headless mode (default: true)
    E2E_CHANNEL: Browser channel, e.g. chrome
    E2E_SLOW_MO: Slow motion delay in ms (default: 0)
    E2E_STORAGE_STATE: Saved storage state to start from
    E2E_RECORD_VIDEO: Record video (default: false)
"""
