"""Pytest configuration and fixtures."""

import pytest

from trainset_ingest.store import InMemoryFeatureStore


@pytest.fixture
def branding_upload():
    """Branding rows as exported with human-friendly headers."""
    return [
        {
            "Trainset ID": "T001",
            "Advertiser Contract ID": "AD-22",
            "Wrap Exposure Hours Remaining": "1,200",
            "Branding Priority Score": "high",
            "Next Scheduling Deadline": "2025-10-05",
            "Penalty Risk Flag": "1",
        },
        {
            "Trainset ID": "T004",
            "Advertiser Contract ID": "AD-31",
            "Wrap Exposure Hours Remaining": "15",
            "Branding Priority Score": "7",
            "Next Scheduling Deadline": "",
            "Penalty Risk Flag": "no",
        },
    ]


@pytest.fixture
def certificates_upload():
    """Fitness certificate rows with composite status cells."""
    return [
        {
            "Trainset ID": "T001",
            "Rolling-Stock fitness status": "Valid (2025-11-17)",
            "Signalling fitness status": "valid",
            "Telecom fitness status": "expired",
            "Overall fitness clearance": "Cleared",
        },
        {
            "Trainset ID": "T002",
            "Rolling-Stock fitness status": "expired",
            "Signalling fitness status": "valid (2025-12-01)",
            "Telecom fitness status": "valid",
            "Overall fitness clearance": "Not Cleared",
        },
    ]


@pytest.fixture
def raw_uploads(branding_upload, certificates_upload):
    """One raw upload per dataset kind."""
    return {
        "certificates": certificates_upload,
        "maintenance": [
            {
                "Trainset ID": "T001",
                "Open Work Orders": "2",
                "Closed Work Orders (last 24h)": " 3 ",
                "Priority Level": "High",
                "Maintenance Type": "Standard",
                "Estimated Completion Date": "2025-09-28",
            },
        ],
        "branding": branding_upload,
        "mileage": [
            {
                "Trainset ID": "T001",
                "Total KM since last maintenance": "12,500",
                "Mileage Deviation from Avg": "-350",
                "Component Wear Estimate": "bogie:72%, brake:70%, HVAC:82%",
                "Recommended Mileage Allocation": "180",
            },
        ],
        "cleaning": [
            {
                "Trainset ID": "T003",
                "Cleaning Required": "1",
                "Detailing Required": "0",
                "Available Cleaning Slot": "2025-09-26T06:00:00Z",
                "Bay Occupancy Status": "Occupied",
                "Cleaning Manpower Available": "4",
            },
        ],
        "stabling": [
            {
                "Trainset ID": "T004",
                "Stabling Bay Number": "A-02",
                "Accessibility Score": "6.5",
                "Shunting Required": "Yes",
                "Estimated Shunting Time": "12",
                "Distance from Inspection/Cleaning Bay": "180",
            },
        ],
    }


@pytest.fixture
def store():
    """Empty in-memory feature store."""
    return InMemoryFeatureStore()


@pytest.fixture
def csv_dir(tmp_path):
    """Folder with branding and mileage export files."""
    (tmp_path / "branding_priorities.csv").write_text(
        "Trainset ID,Advertiser Contract ID,Branding Priority Score,Penalty Risk Flag\n"
        "T001,AD-22,high,1\n"
        "\n"
        "T004,AD-31,medium,0\n",
        encoding="utf-8",
    )
    (tmp_path / "mileage_balancing.csv").write_text(
        "\ufeffTrainset ID,Total KM since last maintenance,Component Wear Estimate\n"
        'T001,"12,500","bogie:72%, brake:70%"\n',
        encoding="utf-8",
    )
    return tmp_path
