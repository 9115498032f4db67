import io
import json

import pytest

from app import app
from config import DOCX_MIMETYPE
from docfill.placeholder_filler import PlaceholderFiller


@pytest.fixture
def client():
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


def upload(docx_bytes, filename="safe.docx", values=None):
    data = {'file': (io.BytesIO(docx_bytes), filename)}
    if values is not None:
        data['values'] = json.dumps(values)
    return data


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.get_json()['success'] is True


def test_scan_lists_placeholders_in_priority_order(client, safe_docx):
    response = client.post('/api/scan', data=upload(safe_docx), content_type='multipart/form-data')
    assert response.status_code == 200

    body = response.get_json()
    keys = [p['key'] for p in body['placeholders']]
    assert keys[0] == "Company Name"
    assert keys[-1] == "Investor Email"
    company = body['placeholders'][0]
    assert company['occurrences'] == 2
    assert company['question'] == "What is the Company Name?"


def test_scan_requires_a_file(client):
    response = client.post('/api/scan', data={}, content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_scan_rejects_other_extensions(client):
    response = client.post('/api/scan', data=upload(b"hello", "notes.txt"), content_type='multipart/form-data')
    assert response.status_code == 400


def test_scan_rejects_unreadable_docx(client):
    response = client.post('/api/scan', data=upload(b"not a zip"), content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['errors']


def test_preview(client, safe_docx):
    response = client.post(
        '/api/preview',
        data=upload(safe_docx, values={"Purchase Amount": "100k"}),
        content_type='multipart/form-data',
    )
    assert response.status_code == 200
    body = response.get_json()
    assert 'of $100,000 (the "Purchase Amount")' in body['text']
    assert body['values'] == {"Purchase Amount": "$100,000"}
    assert "Purchase Amount" not in body['pending']
    assert body['pending'][0] == "Company Name"
    assert body['complete'] is False


def test_preview_rejects_bad_values(client, safe_docx):
    data = upload(safe_docx)
    data['values'] = "{not json"
    response = client.post('/api/preview', data=data, content_type='multipart/form-data')
    assert response.status_code == 400


def test_fill_returns_document(client, safe_docx, safe_answers, read_paragraphs):
    response = client.post(
        '/api/fill',
        data=upload(safe_docx, values=safe_answers),
        content_type='multipart/form-data',
    )
    assert response.status_code == 200
    assert response.mimetype == DOCX_MIMETYPE
    assert 'completed-document.docx' in response.headers['Content-Disposition']
    assert "Acme Robotics, Inc." in read_paragraphs(response.data)


def test_fill_scans_the_upload_once(client, safe_docx, monkeypatch):
    calls = []
    original = PlaceholderFiller.scan_bytes

    def counting(self, docx_bytes):
        calls.append(len(docx_bytes))
        return original(self, docx_bytes)

    monkeypatch.setattr(PlaceholderFiller, 'scan_bytes', counting)
    response = client.post(
        '/api/fill',
        data=upload(safe_docx, values={"Company Name": "Acme"}),
        content_type='multipart/form-data',
    )
    assert response.status_code == 200
    assert len(calls) == 1


def test_fill_rejects_unreadable_docx(client):
    response = client.post('/api/fill', data=upload(b"not a zip", values={}), content_type='multipart/form-data')
    assert response.status_code == 400
