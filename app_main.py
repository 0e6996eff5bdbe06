"""Application entry point for CourseQt."""

from __future__ import annotations

import socket
import sys

from PySide6.QtWidgets import QApplication

from course_app.core.course_loader import load_courses_from_file
from course_app.core.course_manager import CourseManager
from course_app.core.models import AppUser, UserRole
from course_app.core.services.course_repository import CourseRepository
from course_app.core.settings import Settings, load_settings
from course_app.core.stores import (
    InMemoryEnrollmentStore,
    InMemoryProgressStore,
    InMemoryUserDirectory,
    StaticAuthProvider,
)
from course_app.server.api_server import start_api_server
from course_app.ui.main_window import MainWindow
from course_app.utils.logging_config import configure_logging

DEMO_COURSE_FILE = "demo_course.json"

DEMO_USERS = {
    "student": AppUser(
        id="student-1",
        role=UserRole.STUDENT,
        email="ada@example.org",
        first_name="Ada",
        last_name="Lovelace",
    ),
    "teacher": AppUser(
        id="teacher-1",
        role=UserRole.TEACHER,
        email="emmy@example.org",
        first_name="Emmy",
        last_name="Noether",
    ),
}


def _determine_api_url(host: str, port: int) -> str:
    """Best-effort determination of the address other devices can reach the API on."""
    if host not in ("0.0.0.0", ""):
        return f"http://{host}:{port}/"
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def build_course_manager(settings: Settings) -> CourseManager:
    courses = load_courses_from_file(settings.data_dir / DEMO_COURSE_FILE)
    return CourseManager(
        CourseRepository(courses),
        InMemoryProgressStore(),
        InMemoryEnrollmentStore(),
        user_directory=InMemoryUserDirectory(list(DEMO_USERS.values())),
        tick_interval_seconds=settings.tick_interval_seconds,
        write_attempts=settings.progress_write_attempts,
    )


def main() -> None:
    """Load settings and demo data, start the API server, and launch the Qt UI."""
    settings = load_settings()
    logger = configure_logging(settings.log_level)
    logger.info("Starting CourseQt as the demo %s", settings.demo_role)

    course_manager = build_course_manager(settings)
    user = DEMO_USERS[settings.demo_role]
    auth = StaticAuthProvider(user)

    api_url = None
    if settings.api_enabled:
        start_api_server(
            course_manager,
            auth,
            host=settings.api_host,
            port=settings.api_port,
            log_level=settings.log_level,
        )
        api_url = _determine_api_url(settings.api_host, settings.api_port)
        logger.info("Student API available at %s", api_url)

    app = QApplication(sys.argv)
    window = MainWindow(course_manager, user, api_url=api_url)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
