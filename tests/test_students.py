"""Tests for students API."""

import re
from uuid import UUID, uuid4

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from school_api.models.classroom import Classroom
from school_api.models.school import School
from school_api.models.student import Student
from tests.conftest import auth_header, create_classroom, create_school, create_student


async def reload(db: AsyncSession, instance):
    """Re-read a row written by the application."""
    return await db.get(type(instance), instance.id, populate_existing=True)


class TestCreateStudent:
    """Tests for creating students."""

    async def test_create_with_classroom(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        classroom = await create_classroom(db, school)

        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(school_admin_token),
            json={
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "ada@example.com",
                "classroomId": str(classroom.id),
                "gender": "female",
                "guardian": {"name": "Anne", "relationship": "mother", "phone": "555-123-4567"},
            },
        )

        assert response.status_code == 200
        student = response.json()["data"]["student"]
        assert re.fullmatch(r"STU\d{2}[A-Z0-9]{6}", student["studentCode"])
        assert student["fullName"] == "Ada Lovelace"
        assert student["status"] == "enrolled"
        assert student["schoolId"] == str(school.id)
        assert student["classroom"]["name"] == "Room 101"
        assert student["guardian"]["phone"] == "5551234567"
        assert student["previousSchools"] == []

        assert (await reload(db, school)).current_student_count == 1
        assert (await reload(db, classroom)).current_student_count == 1

    async def test_create_without_classroom(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(school_admin_token),
            json={"firstName": "Alan", "lastName": "Turing"},
        )

        assert response.json()["data"]["student"]["classroomId"] is None
        assert (await reload(db, school)).current_student_count == 1

    async def test_school_full(self, client: AsyncClient, db: AsyncSession, superadmin_token: str):
        tiny = await create_school(db, "Tiny School", max_students=1)
        await create_student(db, tiny)

        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(superadmin_token),
            json={"firstName": "Late", "lastName": "Comer", "schoolId": str(tiny.id)},
        )

        assert response.json()["errors"] == "School has reached maximum student capacity"
        assert (await reload(db, tiny)).current_student_count == 1

    async def test_classroom_full(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        classroom = await create_classroom(db, school, capacity=1)
        await create_student(db, school, classroom)

        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(school_admin_token),
            json={"firstName": "Late", "lastName": "Comer", "classroomId": str(classroom.id)},
        )

        assert response.json()["errors"] == "Classroom has reached maximum capacity"
        assert (await reload(db, school)).current_student_count == 1

    async def test_classroom_of_other_school(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, other_school: School
    ):
        classroom = await create_classroom(db, other_school)

        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(school_admin_token),
            json={"firstName": "Lost", "lastName": "Kid", "classroomId": str(classroom.id)},
        )

        assert response.json()["errors"] == "Classroom does not belong to the specified school"

    async def test_inactive_classroom(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        classroom = await create_classroom(db, school, is_active=False)

        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(school_admin_token),
            json={"firstName": "Lost", "lastName": "Kid", "classroomId": str(classroom.id)},
        )

        assert response.json()["errors"] == "Cannot enroll student in inactive classroom"

    async def test_duplicate_email_in_school(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        await create_student(db, school, email="dup@example.com")

        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(school_admin_token),
            json={"firstName": "Copy", "lastName": "Cat", "email": "dup@example.com"},
        )

        assert response.json()["errors"] == "A student with this email already exists in this school"
        assert (await reload(db, school)).current_student_count == 1

    async def test_same_email_in_other_school_allowed(
        self, client: AsyncClient, db: AsyncSession, superadmin_token: str, school: School, other_school: School
    ):
        await create_student(db, school, email="twin@example.com")

        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(superadmin_token),
            json={"firstName": "Twin", "lastName": "Two", "email": "twin@example.com", "schoolId": str(other_school.id)},
        )

        assert response.json()["ok"] is True

    async def test_email_of_inactive_student_reusable(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        await create_student(db, school, email="gone@example.com", is_active=False)

        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(school_admin_token),
            json={"firstName": "New", "lastName": "Kid", "email": "gone@example.com"},
        )

        assert response.json()["ok"] is True

    async def test_default_country_is_stored(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str
    ):
        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(school_admin_token),
            json={"firstName": "No", "lastName": "Address"},
        )

        student = response.json()["data"]["student"]
        assert student["address"]["country"] == "USA"
        row = await db.get(Student, UUID(student["id"]), populate_existing=True)
        assert row.address["country"] == "USA"

    async def test_blank_ids_count_as_missing(
        self, client: AsyncClient, school_admin_token: str, school: School
    ):
        response = await client.post(
            "/api/student/createStudent",
            headers=auth_header(school_admin_token),
            json={"firstName": "Blank", "lastName": "Ids", "schoolId": "", "classroomId": ""},
        )

        assert response.status_code == 200
        student = response.json()["data"]["student"]
        assert student["schoolId"] == str(school.id)
        assert student["classroomId"] is None


class TestGetStudents:
    """Tests for reading students."""

    async def test_address_returned_as_stored(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        student = await create_student(db, school, address={"city": "Springfield"})

        response = await client.get(
            "/api/student/getStudent",
            headers=auth_header(school_admin_token),
            params={"studentId": str(student.id)},
        )

        address = response.json()["data"]["student"]["address"]
        assert address["city"] == "Springfield"
        assert address["country"] is None

    async def test_get_student_other_school_forbidden(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, other_school: School
    ):
        student = await create_student(db, other_school)

        response = await client.get(
            "/api/student/getStudent",
            headers=auth_header(school_admin_token),
            params={"studentId": str(student.id)},
        )

        assert response.status_code == 403
        assert response.json()["errors"] == "Access denied. This student belongs to a different school."

    async def test_get_student_not_found(self, client: AsyncClient, school_admin_token: str):
        response = await client.get(
            "/api/student/getStudent",
            headers=auth_header(school_admin_token),
            params={"studentId": str(uuid4())},
        )

        assert response.json()["errors"] == "Student not found"

    async def test_list_sorted_and_scoped(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School, other_school: School
    ):
        await create_student(db, school, first_name="Zed", last_name="Adams")
        await create_student(db, school, first_name="Amy", last_name="Baker")
        await create_student(db, school, first_name="Bob", last_name="Adams")
        await create_student(db, other_school, first_name="Out", last_name="Sider")

        response = await client.get("/api/student/getStudents", headers=auth_header(school_admin_token))

        names = [s["fullName"] for s in response.json()["data"]["students"]]
        assert names == ["Bob Adams", "Zed Adams", "Amy Baker"]

    async def test_list_filters(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        classroom = await create_classroom(db, school)
        placed = await create_student(db, school, classroom, first_name="Placed", grade="4")
        await create_student(db, school, first_name="Unplaced", grade="5", email="unplaced@example.com")

        by_classroom = await client.get(
            "/api/student/getStudents",
            headers=auth_header(school_admin_token),
            params={"classroomId": str(classroom.id)},
        )
        by_grade = await client.get(
            "/api/student/getStudents",
            headers=auth_header(school_admin_token),
            params={"grade": "5"},
        )
        by_code = await client.get(
            "/api/student/getStudents",
            headers=auth_header(school_admin_token),
            params={"search": placed.student_code.lower()},
        )
        by_email = await client.get(
            "/api/student/getStudents",
            headers=auth_header(school_admin_token),
            params={"search": "unplaced@"},
        )

        assert [s["firstName"] for s in by_classroom.json()["data"]["students"]] == ["Placed"]
        assert [s["firstName"] for s in by_grade.json()["data"]["students"]] == ["Unplaced"]
        assert [s["firstName"] for s in by_code.json()["data"]["students"]] == ["Placed"]
        assert [s["firstName"] for s in by_email.json()["data"]["students"]] == ["Unplaced"]


class TestUpdateStudent:
    """Tests for updating students."""

    async def test_partial_update(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        student = await create_student(db, school, grade="3")

        response = await client.put(
            "/api/student/updateStudent",
            headers=auth_header(school_admin_token),
            json={"studentId": str(student.id), "lastName": "Smith", "schoolId": str(school.id)},
        )

        updated = response.json()["data"]["student"]
        assert updated["lastName"] == "Smith"
        assert updated["firstName"] == "Jane"
        assert updated["grade"] == "3"

    async def test_school_and_classroom_not_changed(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        classroom = await create_classroom(db, school)
        student = await create_student(db, school)

        await client.put(
            "/api/student/updateStudent",
            headers=auth_header(school_admin_token),
            json={"studentId": str(student.id), "classroomId": str(classroom.id)},
        )

        assert (await reload(db, student)).classroom_id is None
        assert (await reload(db, classroom)).current_student_count == 0

    async def test_email_conflict(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        await create_student(db, school, email="taken@example.com")
        student = await create_student(db, school, first_name="John", email="john@example.com")

        response = await client.put(
            "/api/student/updateStudent",
            headers=auth_header(school_admin_token),
            json={"studentId": str(student.id), "email": "taken@example.com"},
        )

        assert response.json()["errors"] == "A student with this email already exists in this school"

    async def test_deactivate_and_reactivate_adjust_counters(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        classroom = await create_classroom(db, school)
        student = await create_student(db, school, classroom)

        await client.put(
            "/api/student/updateStudent",
            headers=auth_header(school_admin_token),
            json={"studentId": str(student.id), "isActive": False},
        )
        assert (await reload(db, school)).current_student_count == 0
        assert (await reload(db, classroom)).current_student_count == 0

        await client.put(
            "/api/student/updateStudent",
            headers=auth_header(school_admin_token),
            json={"studentId": str(student.id), "isActive": True},
        )
        assert (await reload(db, school)).current_student_count == 1
        assert (await reload(db, classroom)).current_student_count == 1

    async def test_reactivate_into_full_classroom(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        classroom = await create_classroom(db, school, capacity=1)
        dormant = await create_student(db, school, classroom, is_active=False)
        await create_student(db, school, classroom, first_name="Seated")

        response = await client.put(
            "/api/student/updateStudent",
            headers=auth_header(school_admin_token),
            json={"studentId": str(dormant.id), "isActive": True},
        )

        assert response.json()["errors"] == "Classroom has reached maximum capacity"
        assert (await reload(db, dormant)).is_active is False
        assert (await reload(db, school)).current_student_count == 1


class TestDeleteStudent:
    """Tests for deleting students."""

    async def test_delete_releases_seats(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        classroom = await create_classroom(db, school)
        student = await create_student(db, school, classroom)
        student_id = student.id

        response = await client.delete(
            "/api/student/deleteStudent",
            headers=auth_header(school_admin_token),
            params={"studentId": str(student_id)},
        )

        assert response.json()["ok"] is True
        assert (await reload(db, school)).current_student_count == 0
        assert (await reload(db, classroom)).current_student_count == 0
        db.expunge_all()
        assert await db.get(Student, student_id) is None

    async def test_delete_inactive_keeps_counters(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        await create_student(db, school, first_name="Active")
        inactive = await create_student(db, school, is_active=False)

        await client.delete(
            "/api/student/deleteStudent",
            headers=auth_header(school_admin_token),
            params={"studentId": str(inactive.id)},
        )

        assert (await reload(db, school)).current_student_count == 1

    async def test_delete_other_school_forbidden(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, other_school: School
    ):
        student = await create_student(db, other_school)

        response = await client.delete(
            "/api/student/deleteStudent",
            headers=auth_header(school_admin_token),
            params={"studentId": str(student.id)},
        )

        assert response.status_code == 403
        assert (await reload(db, other_school)).current_student_count == 1


class TestTransferStudent:
    """Tests for transferring students between schools."""

    async def test_transfer_moves_seats_and_records_history(
        self, client: AsyncClient, db: AsyncSession, superadmin_token: str, school: School, other_school: School
    ):
        classroom = await create_classroom(db, school)
        student = await create_student(db, school, classroom)

        response = await client.post(
            "/api/student/transferStudent",
            headers=auth_header(superadmin_token),
            json={"studentId": str(student.id), "toSchoolId": str(other_school.id), "reason": "Family moved"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["transfer"]["from"]["name"] == "Lincoln High"
        assert data["transfer"]["to"]["name"] == "Roosevelt Middle"
        moved = data["student"]
        assert moved["schoolId"] == str(other_school.id)
        assert moved["classroomId"] is None
        assert moved["status"] == "enrolled"
        assert len(moved["previousSchools"]) == 1
        assert moved["previousSchools"][0]["schoolName"] == "Lincoln High"
        assert moved["previousSchools"][0]["reason"] == "Family moved"

        assert (await reload(db, school)).current_student_count == 0
        assert (await reload(db, other_school)).current_student_count == 1
        assert (await reload(db, classroom)).current_student_count == 0

    async def test_default_reason(
        self, client: AsyncClient, db: AsyncSession, superadmin_token: str, school: School, other_school: School
    ):
        student = await create_student(db, school)

        response = await client.post(
            "/api/student/transferStudent",
            headers=auth_header(superadmin_token),
            json={"studentId": str(student.id), "toSchoolId": str(other_school.id)},
        )

        assert response.json()["data"]["student"]["previousSchools"][0]["reason"] == "Transfer"

    async def test_destination_full_leaves_counters(
        self, client: AsyncClient, db: AsyncSession, superadmin_token: str
    ):
        source = await create_school(db, "Full A", max_students=10)
        destination = await create_school(db, "Full B", max_students=5)
        students = [await create_student(db, source, first_name=f"A{i}") for i in range(10)]
        for i in range(5):
            await create_student(db, destination, first_name=f"B{i}")

        response = await client.post(
            "/api/student/transferStudent",
            headers=auth_header(superadmin_token),
            json={"studentId": str(students[0].id), "toSchoolId": str(destination.id)},
        )

        assert response.json()["ok"] is False
        assert response.json()["errors"] == "Destination school has reached maximum capacity"
        assert (await reload(db, source)).current_student_count == 10
        assert (await reload(db, destination)).current_student_count == 5

    async def test_same_school(self, client: AsyncClient, db: AsyncSession, superadmin_token: str, school: School):
        student = await create_student(db, school)

        response = await client.post(
            "/api/student/transferStudent",
            headers=auth_header(superadmin_token),
            json={"studentId": str(student.id), "toSchoolId": str(school.id)},
        )

        assert response.json()["errors"] == "Student is already in this school"

    async def test_unknown_destination(self, client: AsyncClient, db: AsyncSession, superadmin_token: str, school: School):
        student = await create_student(db, school)

        response = await client.post(
            "/api/student/transferStudent",
            headers=auth_header(superadmin_token),
            json={"studentId": str(student.id), "toSchoolId": str(uuid4())},
        )

        assert response.json()["errors"] == "Destination school not found"

    async def test_inactive_destination(self, client: AsyncClient, db: AsyncSession, superadmin_token: str, school: School):
        student = await create_student(db, school)
        closed = await create_school(db, "Closed School", is_active=False)

        response = await client.post(
            "/api/student/transferStudent",
            headers=auth_header(superadmin_token),
            json={"studentId": str(student.id), "toSchoolId": str(closed.id)},
        )

        assert response.json()["errors"] == "Cannot transfer to inactive school"

    async def test_email_taken_in_destination(
        self, client: AsyncClient, db: AsyncSession, superadmin_token: str, school: School, other_school: School
    ):
        student = await create_student(db, school, email="same@example.com")
        await create_student(db, other_school, email="same@example.com")

        response = await client.post(
            "/api/student/transferStudent",
            headers=auth_header(superadmin_token),
            json={"studentId": str(student.id), "toSchoolId": str(other_school.id)},
        )

        assert response.json()["ok"] is False
        assert (await reload(db, school)).current_student_count == 1

    async def test_inactive_student(
        self, client: AsyncClient, db: AsyncSession, superadmin_token: str, school: School, other_school: School
    ):
        student = await create_student(db, school, is_active=False)

        response = await client.post(
            "/api/student/transferStudent",
            headers=auth_header(superadmin_token),
            json={"studentId": str(student.id), "toSchoolId": str(other_school.id)},
        )

        assert response.json()["errors"] == "Cannot transfer an inactive student"

    async def test_school_admin_forbidden(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School, other_school: School
    ):
        student = await create_student(db, school)

        response = await client.post(
            "/api/student/transferStudent",
            headers=auth_header(school_admin_token),
            json={"studentId": str(student.id), "toSchoolId": str(other_school.id)},
        )

        assert response.status_code == 403


class TestEnrollInClassroom:
    """Tests for enrolling students in classrooms."""

    async def test_enroll_moves_between_classrooms(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        first = await create_classroom(db, school, "First")
        second = await create_classroom(db, school, "Second")
        student = await create_student(db, school, first)

        response = await client.post(
            "/api/student/enrollInClassroom",
            headers=auth_header(school_admin_token),
            json={"studentId": str(student.id), "classroomId": str(second.id)},
        )

        assert response.json()["data"]["student"]["classroomId"] == str(second.id)
        assert (await reload(db, first)).current_student_count == 0
        assert (await reload(db, second)).current_student_count == 1
        assert (await reload(db, school)).current_student_count == 1

    async def test_already_enrolled(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        classroom = await create_classroom(db, school)
        student = await create_student(db, school, classroom)

        response = await client.post(
            "/api/student/enrollInClassroom",
            headers=auth_header(school_admin_token),
            json={"studentId": str(student.id), "classroomId": str(classroom.id)},
        )

        assert response.json()["errors"] == "Student is already enrolled in this classroom"
        assert (await reload(db, classroom)).current_student_count == 1

    async def test_classroom_of_other_school(
        self, client: AsyncClient, db: AsyncSession, superadmin_token: str, school: School, other_school: School
    ):
        classroom = await create_classroom(db, other_school)
        student = await create_student(db, school)

        response = await client.post(
            "/api/student/enrollInClassroom",
            headers=auth_header(superadmin_token),
            json={"studentId": str(student.id), "classroomId": str(classroom.id)},
        )

        assert response.json()["errors"] == "Classroom does not belong to the student's school"

    async def test_full_classroom(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        classroom = await create_classroom(db, school, capacity=1)
        await create_student(db, school, classroom)
        student = await create_student(db, school, first_name="Waiting")

        response = await client.post(
            "/api/student/enrollInClassroom",
            headers=auth_header(school_admin_token),
            json={"studentId": str(student.id), "classroomId": str(classroom.id)},
        )

        assert response.json()["errors"] == "Classroom has reached maximum capacity"
        refreshed: Classroom = await reload(db, classroom)
        assert refreshed.current_student_count == 1
        assert refreshed.current_student_count <= refreshed.capacity

    async def test_unknown_classroom(
        self, client: AsyncClient, db: AsyncSession, school_admin_token: str, school: School
    ):
        student = await create_student(db, school)

        response = await client.post(
            "/api/student/enrollInClassroom",
            headers=auth_header(school_admin_token),
            json={"studentId": str(student.id), "classroomId": str(uuid4())},
        )

        assert response.json()["errors"] == "Classroom not found"
