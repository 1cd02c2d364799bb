from shadanga.models.user import User
from shadanga.models.course import Course
from shadanga.models.lesson import Lesson
from shadanga.models.course_enrollment import CourseEnrollment
from shadanga.models.lesson_progress import LessonProgress
from shadanga.models.user_device import UserDevice
from shadanga.models.offline_download import OfflineDownload
from shadanga.models.token_denylist import TokenDenylist
