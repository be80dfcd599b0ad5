# mentorship_hub/constants.py
class ErrorMessages:
    LEARNER_NOT_FOUND = "Student profile not found"
    MENTOR_NOT_FOUND = "Mentor profile not found"
    TARGET_NOT_FOUND = "Requested mentor not found"
    SUBJECT_NOT_FOUND = "Subject not found"
    REQUEST_NOT_FOUND = "Mentorship request not found"
    EDGE_NOT_FOUND = "Mentorship relationship not found"
    PROFILE_INCOMPLETE = "Please complete your profile before accessing this feature"
    FIRST_SEMESTER = "Mentoring features are available from 2nd semester onwards"
    FOURTH_YEAR = "Fourth-year students cannot request peer mentors; request an official mentor instead"
    SELF_REQUEST = "You cannot send a mentorship request to yourself"
    BRANCH_MISMATCH = "Mentor must be from your branch"
    ALREADY_MENTORED = "You already have a mentor for this subject"
    REQUESTER_ALREADY_MENTORED = "This student already has a mentor for this subject"
    REQUESTER_GONE = "The requesting student no longer exists"
    OFFICIAL_DEACTIVATE_UNAVAILABLE = "Professional mentors can only remove this mentee completely"
    DUPLICATE_REQUEST = "A pending request already exists for this mentor and subject"
    NOT_STRONG_SUBJECT = "This student does not mentor the requested subject"
    NOT_ACCEPTING = "This mentor is not accepting new mentees"
    CAPACITY_EXCEEDED = "Mentor has reached maximum capacity"
    ALREADY_RESPONDED = "Request has already been responded to"
    DUPLICATE_OFFICIAL_REQUEST = "A pending request already exists for this mentor"
    ALREADY_CONNECTED = "You are already connected with this mentor"
    MENTOR_INACTIVE = "This mentor is not currently available"
    EDGE_INACTIVE = "Mentorship relationship is not active"
    ALREADY_RATED = "You have already rated this relationship"
    TOO_EARLY_TO_RATE = "Relationships can be rated after {days} days"
    MESSAGE_TOO_LONG = "Message cannot exceed {limit} characters"
    CONCURRENT_MODIFICATION = "The relationship was modified concurrently, please retry"
    DUPLICATE_PROFILE = "Profile already exists for this user"
    UNAUTHORIZED_STUDENT = "Only students can perform this action"
    UNAUTHORIZED_MENTOR = "Only professional mentors can perform this action"

class BusinessRules:
    BRANCHES = ("Computer", "IT", "AIML", "ECS")
    TEACHING_MODES = ("online", "offline", "both")
    DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
    # year -> semesters a student of that year can be in
    YEAR_SEMESTERS = {1: (1, 2), 2: (3, 4), 3: (5, 6), 4: (7, 8)}
    MIN_SEMESTER = 1
    MAX_SEMESTER = 8
    MIN_CONFIDENCE = 1
    MAX_CONFIDENCE = 5
    DEFAULT_CONFIDENCE = 3
    MIN_MENTEES = 1
    MAX_MENTEES = 20
    DEFAULT_MAX_MENTEES = 3
    MIN_SCORE = 1
    MAX_SCORE = 5
    MAX_FEEDBACK_LENGTH = 500
    MAX_BIO_LENGTH = 500
    TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"

class RedirectUrls:
    REQUESTS = "/dashboard/requests"
    MENTORS = "/dashboard/mentors"
    MENTEES = "/dashboard/mentees"
    OFFICIAL_MENTORS = "/dashboard/official-mentors"
    MENTOR_REQUESTS = "/mentor/requests"
    RATINGS = "/dashboard/ratings"
    DASHBOARD = "/dashboard"
