"""
Data Loader Script - Seeds sample_students.json into the service via the API.

Posts each student to POST /students and prints a per-record summary.
This can be run from inside the backend container or from the host.

Usage:
    python load_data.py                              # Uses default URL
    python load_data.py http://localhost:8000         # Custom API URL
    python load_data.py http://backend:8000           # Inside Docker network
"""

import json
import os
import sys

import httpx


def post_student(client: httpx.Client, url: str, student: dict) -> httpx.Response:
    return client.post(url, json=student)


def main():
    api_url = sys.argv[1] if len(sys.argv) > 1 else os.getenv("API_URL", "http://localhost:8000")
    students_url = f"{api_url.rstrip('/')}/students"

    # Locate the data file
    data_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), "sample_students.json")
    if not os.path.exists(data_file):
        data_file = "sample_students.json"

    if not os.path.exists(data_file):
        print("Error: Could not find sample_students.json")
        sys.exit(1)

    print(f"Loading data from: {data_file}")
    with open(data_file, 'r') as f:
        students = json.load(f)

    print(f"Found {len(students)} students to create")
    print(f"Sending to: {students_url}")
    print()

    created = 0
    rejected = 0
    with httpx.Client(timeout=30.0) as client:
        for student in students:
            name = f"{student.get('firstName', '?')} {student.get('lastName', '?')}"
            try:
                resp = post_student(client, students_url, student)
            except httpx.HTTPError as e:
                print(f"Error: could not reach {students_url}: {e}")
                sys.exit(1)

            body = resp.json()
            if resp.status_code == 201:
                created += 1
                print(f"  ✅ {name}: created with id {body['data']['id']}")
            else:
                rejected += 1
                fields = ", ".join(d.get("field", "?") for d in body.get("details", []))
                print(f"  ❌ {name}: {resp.status_code} {body.get('error', '?')} {fields}".rstrip())

    print()
    print("=" * 60)
    print("SEED SUMMARY")
    print("=" * 60)
    print(f"  Created:   {created}")
    print(f"  Rejected:  {rejected}")
    print("=" * 60)

    if rejected:
        sys.exit(1)


if __name__ == "__main__":
    main()
