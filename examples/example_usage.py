"""Example: drive the tracker through the operations layer (no transport).

Goal: show that adapters only pass tokens and timestamps; the rules live in the services.
"""

from src.time_tracker.time_tracker.main import create_tracker

DEMO_USERNAME = "demo"
DEMO_PASSWORD = "demo-pass"


def main():
    container = create_tracker()
    try:
        if container.users_repo.get_by_username(DEMO_USERNAME) is None:
            container.user_service.create_account(username=DEMO_USERNAME, name="Demo User", password=DEMO_PASSWORD)

        ops = container.operations
        login = ops.login(DEMO_USERNAME, DEMO_PASSWORD)
        ops.check_in(login.token)
        ops.record_activity(login.token, metadata={"source": "example"})
        print(ops.current_session(login.token))
        print(ops.check_out(login.token))
        print(ops.recent_activity(login.token, limit=5))
    finally:
        container.close()


if __name__ == "__main__":
    main()
