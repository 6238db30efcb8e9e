import unittest

from campus_connect import Session, SessionError, session_from_headers


class TestSessionFromHeaders(unittest.TestCase):
    def test_builds_session_from_headers(self) -> None:
        session = session_from_headers(
            {"X-User-Id": "faculty-1", "X-User-Role": "Faculty", "X-User-Name": "Dr. Rahman"}
        )

        self.assertEqual(session, Session(user_id="faculty-1", role="faculty", user_name="Dr. Rahman"))
        self.assertEqual(session.display_name, "Dr. Rahman")

    def test_display_name_falls_back_to_user_id(self) -> None:
        session = session_from_headers({"X-User-Id": "student-7", "X-User-Role": "student"})
        self.assertEqual(session.display_name, "student-7")

    def test_missing_identity_raises(self) -> None:
        with self.assertRaises(SessionError):
            session_from_headers({"X-User-Role": "faculty"})
        with self.assertRaises(SessionError):
            session_from_headers({"X-User-Id": "faculty-1"})

    def test_unknown_role_raises(self) -> None:
        with self.assertRaises(SessionError):
            session_from_headers({"X-User-Id": "x", "X-User-Role": "superuser"})

    def test_require_role(self) -> None:
        session = Session(user_id="student-7", role="student")
        session.require_role("student", "faculty")
        with self.assertRaises(PermissionError):
            session.require_role("faculty", "admin")


if __name__ == "__main__":
    unittest.main()
