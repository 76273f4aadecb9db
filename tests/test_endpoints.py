from fastapi.testclient import TestClient

from tests.helpers.asserts import api_call


def test_platform_metrics_envelope(client: TestClient):
    response = api_call(client, "GET", "/analytics/platform")
    body = response.json()

    assert body["message"] == "Platform metrics retrieved successfully"
    data = body["data"]
    assert data["totalUsers"] == 100
    assert data["newUsersThisMonth"] == 10
    assert data["totalRevenue"] == 500.0
    assert data["revenueByMonth"] == [{"month": "2024-06", "revenue": 500.0}]


def test_platform_metrics_with_date_range(client: TestClient):
    response = api_call(client, "GET", "/analytics/platform?from=2024-06-12T00:00:00&to=2024-06-15T12:00:00")
    assert response.json()["data"]["totalRevenue"] == 300.0


def test_half_open_range_uses_default_window(client: TestClient):
    response = api_call(client, "GET", "/analytics/platform?from=2024-06-14T00:00:00")
    assert response.json()["data"]["totalRevenue"] == 500.0


def test_reversed_range_is_rejected(client: TestClient):
    response = client.get("/analytics/platform", params={"from": "2024-06-15T00:00:00", "to": "2024-06-01T00:00:00"})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_malformed_date_is_rejected(client: TestClient):
    response = client.get("/analytics/course/1", params={"from": "yesterday", "to": "2024-06-01T00:00:00"})
    assert response.status_code == 422


def test_instructor_course_and_student_routes(client: TestClient):
    instructor = api_call(client, "GET", "/analytics/instructor/1000").json()["data"]
    assert instructor["instructorId"] == 1000
    assert instructor["totalCourses"] == 5
    assert instructor["totalStudents"] == 50

    course = api_call(client, "GET", "/analytics/course/1").json()["data"]
    assert course["totalEnrollments"] == 10
    assert course["completionRate"] == 40.0

    student = api_call(client, "GET", "/analytics/student/1").json()["data"]
    assert student["coursesEnrolled"] == 1
    assert student["coursesCompleted"] == 1


def test_data_source_failure_is_a_server_error(client: TestClient, platform_source):
    platform_source.failures["count_users"] = ConnectionError("database unreachable")

    response = client.get("/analytics/platform")

    assert response.status_code == 500
    body = response.json()
    assert body["error"]["code"] == "INTERNAL_SERVER_ERROR"
    assert "data" not in body


def test_cache_stats_route(client: TestClient, platform_source):
    api_call(client, "GET", "/analytics/platform")
    api_call(client, "GET", "/analytics/platform")

    data = api_call(client, "GET", "/analytics/cache/stats").json()["data"]

    assert platform_source.calls["count_users"] == 1
    assert data["namespaces"]["platform-metrics"]["size"] == 1
    assert data["timings"]["platform-metrics"]["count"] == 2
    assert data["timings"]["http:GET get_platform_metrics"]["count"] == 2


def test_course_timings_share_one_key(client: TestClient):
    api_call(client, "GET", "/analytics/course/1")
    api_call(client, "GET", "/analytics/course/2")

    timings = api_call(client, "GET", "/analytics/cache/stats").json()["data"]["timings"]

    assert timings["http:GET get_course_metrics"]["count"] == 2
    assert not any("/course/" in key for key in timings)


def test_unknown_course_is_not_found(client: TestClient, platform_source):
    response = client.get("/analytics/course/999")

    assert response.status_code == 404
    body = response.json()
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["error"]["message"] == "Course not found"
    assert "data" not in body
    assert platform_source.calls["count_enrollments"] == 0

    stats = api_call(client, "GET", "/analytics/cache/stats").json()["data"]
    assert stats["namespaces"]["course-metrics"]["size"] == 0
