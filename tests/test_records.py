"""Test record listing, status corrections and manual entries."""
import json
from datetime import datetime, timedelta

import pytest

from attendance_engine import db
from attendance_engine.models import AttendanceRecord, AttendanceStatus, ScheduleInstance
from attendance_engine.services.record_service import RecordService
from attendance_engine.utils.errors import InvalidInput, NotFound


def add_records(student_id, class_id, count, start=datetime(2024, 1, 1, 8)):
    for index in range(count):
        db.session.add(AttendanceRecord(
            student_id=student_id,
            class_id=class_id,
            timestamp=start + timedelta(days=index),
            manual_entry=True
        ))
    db.session.commit()


def test_pagination_second_page(seeded):
    add_records(seeded.student_id, seeded.class_id, 25)

    records, pagination = RecordService.get_records(seeded.student_id, page=2, limit=20)

    assert len(records) == 5
    assert pagination == {'total_records': 25, 'total_pages': 2, 'current_page': 2, 'limit': 20}


def test_records_newest_first(seeded):
    add_records(seeded.student_id, seeded.class_id, 3)
    records, _ = RecordService.get_records(seeded.student_id)
    assert [r.timestamp.day for r in records] == [3, 2, 1]


def test_records_filtered_by_class(seeded):
    add_records(seeded.student_id, seeded.class_id, 2)
    records, pagination = RecordService.get_records(seeded.student_id, class_id=seeded.class_id + 1)
    assert records == []
    assert pagination['total_pages'] == 0


def test_invalid_page_rejected(seeded):
    with pytest.raises(InvalidInput):
        RecordService.get_records(seeded.student_id, page=0)


def test_update_status(seeded):
    add_records(seeded.student_id, seeded.class_id, 1)
    record = AttendanceRecord.query.first()

    updated = RecordService.update_status(record.id, 'late')
    assert updated.status == AttendanceStatus.LATE


def test_update_status_validation(seeded):
    add_records(seeded.student_id, seeded.class_id, 1)
    record = AttendanceRecord.query.first()

    with pytest.raises(InvalidInput):
        RecordService.update_status(record.id, 'excused')
    with pytest.raises(NotFound):
        RecordService.update_status(9999, 'absent')


def test_create_manual(seeded):
    record = RecordService.create_manual({
        'student_id': seeded.student_id,
        'class_id': seeded.class_id,
        'status': 'absent',
        'timestamp': '2024-04-02T10:00:00'
    }, marked_by=seeded.teacher_id)

    assert record.manual_entry is True
    assert record.marked_by == seeded.teacher_id
    assert record.status == AttendanceStatus.ABSENT
    assert record.session_id is None
    assert record.timestamp == datetime(2024, 4, 2, 10)


@pytest.mark.parametrize('data, error', [
    ({'class_id': 1, 'status': 'present', 'timestamp': '2024-04-02T10:00:00'}, InvalidInput),
    ({'student_id': 1, 'class_id': 1, 'status': 'gone', 'timestamp': '2024-04-02T10:00:00'}, InvalidInput),
    ({'student_id': 1, 'class_id': 1, 'status': 'present'}, InvalidInput),
    ({'student_id': 9999, 'class_id': 1, 'status': 'present', 'timestamp': '2024-04-02T10:00:00'}, NotFound),
])
def test_create_manual_validation(seeded, data, error):
    with pytest.raises(error):
        RecordService.create_manual(data, marked_by=seeded.teacher_id)


def test_class_attendance_stats(seeded):
    add_records(seeded.student_id, seeded.class_id, 2)
    record = AttendanceRecord.query.first()
    record.status = AttendanceStatus.ABSENT
    db.session.commit()

    records, stats = RecordService.get_class_attendance(seeded.class_id)
    assert len(records) == 2
    assert stats == {'total_enrolled': 2, 'present': 1, 'absent': 1}

    absent_only, _ = RecordService.get_class_attendance(seeded.class_id, status='absent')
    assert [r.id for r in absent_only] == [record.id]


def test_class_attendance_date_range(seeded):
    add_records(seeded.student_id, seeded.class_id, 5)
    records, _ = RecordService.get_class_attendance(
        seeded.class_id,
        start_date=datetime(2024, 1, 2),
        end_date=datetime(2024, 1, 3, 23, 59)
    )
    assert len(records) == 2


def test_records_by_schedule(seeded):
    occurrence = ScheduleInstance(class_id=seeded.class_id, scheduled_date=datetime(2024, 1, 1, 8))
    db.session.add(occurrence)
    db.session.commit()
    db.session.add(AttendanceRecord(
        student_id=seeded.student_id, class_id=seeded.class_id,
        schedule_id=occurrence.id, manual_entry=True
    ))
    db.session.commit()

    assert len(RecordService.get_by_schedule(occurrence.id)) == 1


# API


def test_api_records_pagination(client, seeded, student_headers):
    add_records(seeded.student_id, seeded.class_id, 25)
    response = client.get('/api/attendance/records?page=2&limit=20', headers=student_headers)

    data = json.loads(response.data)['data']
    assert response.status_code == 200
    assert len(data['records']) == 5
    assert data['pagination']['total_pages'] == 2


def test_api_class_records(client, seeded, student_headers):
    add_records(seeded.student_id, seeded.class_id, 3)
    response = client.get(f'/api/attendance/records/class/{seeded.class_id}', headers=student_headers)
    data = json.loads(response.data)['data']
    assert data['pagination']['total_records'] == 3
    assert data['records'][0]['class']['subject_code'] == 'CS301'


def test_api_update_status(client, seeded, teacher_headers):
    add_records(seeded.student_id, seeded.class_id, 1)
    record_id = AttendanceRecord.query.first().id

    response = client.patch(f'/api/reports/records/{record_id}', json={'status': 'late'}, headers=teacher_headers)
    assert response.status_code == 200
    assert json.loads(response.data)['data']['status'] == 'late'

    response = client.patch('/api/reports/records/9999', json={'status': 'late'}, headers=teacher_headers)
    assert response.status_code == 404


def test_api_manual_entry_marked_by_caller(client, seeded, teacher_headers):
    response = client.post('/api/reports/records/manual', json={
        'student_id': seeded.student_id,
        'class_id': seeded.class_id,
        'status': 'present',
        'timestamp': '2024-04-02T10:00:00Z'
    }, headers=teacher_headers)

    assert response.status_code == 201
    data = json.loads(response.data)['data']
    assert data['marked_by'] == seeded.teacher_id
    assert data['manual_entry'] is True


def test_api_class_attendance(client, seeded, teacher_headers):
    add_records(seeded.student_id, seeded.class_id, 2)
    response = client.get(f'/api/reports/class/{seeded.class_id}?status=all', headers=teacher_headers)

    data = json.loads(response.data)['data']
    assert data['stats']['total_enrolled'] == 2
    assert data['attendance'][0]['student']['enrollment_no'] == 'EN0001'


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert json.loads(response.data)['status'] == 'healthy'
