"""Static metadata describing CourseQt."""

APP_NAME = "CourseQt"
APP_VERSION = "0.2"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "CourseQt is a desktop and web client for online courses: follow lessons, "
    "take timed quizzes and keep track of your progress through every module."
)

HELP_TEXT = (
    "Complete every lesson of a module to unlock its quiz. The final quiz opens "
    "once the whole course is done.\n\n"
    "Quizzes are timed. When the countdown reaches zero the quiz is submitted "
    "automatically with the answers you have given so far. Each quiz can be "
    "attempted a limited number of times; leaving a quiz before submitting "
    "does not use up an attempt."
)
