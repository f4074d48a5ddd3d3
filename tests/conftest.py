import pytest


def _profile(municipality, barangay, name, *, population, households, male, female, labor, unemployed,
             seniors, lf_60_64, electricity, toilet, internet, income, signal, roads,
             students_per_room=None, latitude=0, longitude=0, custom=None, voters=0):
    p = {
        "municipality": municipality,
        "barangay": barangay,
        "sitioName": name,
        "latitude": latitude,
        "longitude": longitude,
        "totalPopulation": population,
        "totalHouseholds": households,
        "registeredVoters": voters,
        "population": {"totalMale": male, "totalFemale": female},
        "laborForceCount": labor,
        "vulnerableGroups": {
            "unemployedCount": unemployed,
            "seniorsCount": seniors,
            "laborForce60to64Count": lf_60_64,
        },
        "householdsWithElectricity": electricity,
        "householdsWithToilet": toilet,
        "householdsWithInternet": internet,
        "averageDailyIncome": income,
        "mobileSignal": signal,
        "infrastructure": {
            surface: {"exists": "yes", "length": length, "condition": condition}
            for surface, (length, condition) in roads.items()
        },
        "customFields": custom or {},
    }
    if students_per_room is not None:
        p["studentsPerRoom"] = students_per_room
    return p


@pytest.fixture
def sitio_a():
    """Alpha / North / Ilaya: surveyed 2023 and 2024, GIDA."""
    return {
        "id": 1,
        "municipality": "Alpha",
        "barangay": "North",
        "sitioName": "Ilaya",
        "coding": "ALP-N-01",
        "sitioClassification": {"gida": True, "indigenous": False, "conflict": False},
        "availableYears": [2023, 2024],
        "yearlyData": {
            "2023": _profile(
                "Alpha", "North", "Ilaya", population=100, households=20, male=50, female=50,
                labor=60, unemployed=6, seniors=10, lf_60_64=4, electricity=10, toilet=15, internet=5,
                income=500, signal="4g", roads={"concrete": (2, 4), "gravel": (1, 2)},
                students_per_room="46_50", latitude=6.1, longitude=124.1, voters=60,
                custom={"hasTribalHall": True, "waterTankCount": 2},
            ),
            "2024": _profile(
                "Alpha", "North", "Ilaya", population=120, households=25, male=60, female=60,
                labor=70, unemployed=7, seniors=10, lf_60_64=4, electricity=20, toilet=20, internet=10,
                income=800, signal="4g", roads={"concrete": (3, 4)},
                students_per_room="46_50", latitude=6.1, longitude=124.1, voters=66,
                custom={"hasTribalHall": True, "waterTankCount": 4},
            ),
        },
    }


@pytest.fixture
def sitio_b():
    """Alpha / South / Ibaba: 2024 only, no income recorded, no coordinates."""
    return {
        "id": 2,
        "municipality": "Alpha",
        "barangay": "South",
        "sitioName": "Ibaba",
        "coding": "ALP-S-01",
        "sitioClassification": {"gida": False, "indigenous": False, "conflict": False},
        "availableYears": [2024],
        "yearlyData": {
            "2024": _profile(
                "Alpha", "South", "Ibaba", population=80, households=16, male=40, female=40,
                labor=40, unemployed=10, seniors=8, lf_60_64=0, electricity=8, toilet=4, internet=0,
                income=0, signal="none", roads={"natural": (4, 1)}, voters=40,
                custom={"hasTribalHall": False},
            ),
        },
    }


@pytest.fixture
def sitio_c():
    """Beta / East / Centro: 2023 only, male + female does not add up to the total."""
    return {
        "id": 3,
        "municipality": "Beta",
        "barangay": "East",
        "sitioName": "Centro",
        "coding": "BET-E-01",
        "sitioClassification": {"gida": False, "indigenous": False, "conflict": True},
        "availableYears": [2023],
        "yearlyData": {
            "2023": _profile(
                "Beta", "East", "Centro", population=200, households=40, male=90, female=100,
                labor=100, unemployed=0, seniors=20, lf_60_64=5, electricity=40, toilet=40, internet=20,
                income=2000, signal="5g", roads={"asphalt": (5, 5)},
                students_per_room="less_than_46", latitude=6.3, longitude=124.3, voters=120,
                custom={"waterTankCount": 3},
            ),
        },
    }


@pytest.fixture
def records(sitio_a, sitio_b, sitio_c):
    return [sitio_a, sitio_b, sitio_c]
