# sitiolib/aggregation.py
import logging
import numpy as np
import pandas as pd
from .config import TOP_RECOMMENDED_SITIOS
from .records import (
    profiles_frame, get_all_available_years,
    num, text, flag, items, total,
)
from .thresholds import (
    POVERTY_MONTHLY_THRESHOLD, get_income_cluster, empty_income_cluster_counts,
)

logger = logging.getLogger(__name__)

FACILITIES = [
    "healthCenter", "pharmacy", "communityToilet", "kindergarten",
    "elementarySchool", "highSchool", "madrasah", "market",
]
ROAD_SURFACES = ["asphalt", "concrete", "gravel", "natural"]
WATER_LEVELS = ["natural", "level1", "level2", "level3"]
HAZARDS = ["flood", "landslide", "drought", "earthquake"]
PRIORITY_NAMES = [
    "waterSystem", "communityCR", "solarStreetLights", "roadOpening",
    "farmTools", "healthServices", "educationSupport",
]
SIGNAL_TIERS = {"5g": "signal_5g", "4g": "signal_4g", "3g": "signal_3g", "2g": "signal_2g"}
CLASSROOM_TIERS = {
    "less_than_46": "students_per_room_less_than_46",
    "46_50": "students_per_room_46_50",
    "51_55": "students_per_room_51_55",
    "more_than_56": "students_per_room_more_than_56",
    "no_classroom": "students_per_room_no_classroom",
}
CONDITION_BUCKETS = {5: "excellent", 4: "good", 3: "average", 2: "poor", 1: "bad"}
SANITATION = {
    "waterSealed": "sanitation_water_sealed",
    "pitLatrine": "sanitation_pit_latrine",
    "communityCR": "sanitation_community_cr",
    "openDefecation": "sanitation_open_defecation",
}

# ---------- ratios & trends ----------
def safe_percentage(numerator, denominator) -> float:
    if denominator == 0:
        return 0
    return numerator / denominator * 100

def calculate_yoy_change(current, previous):
    if previous == 0 and current == 0:
        return None
    if previous == 0:
        return {"value": 100, "label": "vs last year", "is_positive": current > 0}
    change = (current - previous) / previous * 100
    return {"value": round(change, 1), "label": "vs last year", "is_positive": change >= 0}

def _income_clusters(income: pd.Series, monthly_threshold) -> dict:
    counts = empty_income_cluster_counts()
    with_income = income[income > 0]
    if not with_income.empty:
        vc = with_income.map(lambda v: get_income_cluster(v, monthly_threshold)).value_counts()
        for cluster, n in vc.items():
            counts[cluster] = int(n)
    return counts

def _age_groups(population, labor, seniors, lf_60_64):
    working = labor
    elderly = max(0, seniors - lf_60_64)
    youth = max(0, population - working - elderly)
    return youth, working, elderly

# ---------- yearly metrics ----------
def _metrics_from_frame(df: pd.DataFrame, year, monthly_threshold) -> dict:
    population = total(num(df, "totalPopulation"))
    households = total(num(df, "totalHouseholds"))
    labor = total(num(df, "laborForceCount"))
    unemployed = total(num(df, "vulnerableGroups.unemployedCount"))
    seniors = total(num(df, "vulnerableGroups.seniorsCount"))
    lf_60_64 = total(num(df, "vulnerableGroups.laborForce60to64Count"))
    hh_elec = total(num(df, "householdsWithElectricity"))
    hh_toilet = total(num(df, "householdsWithToilet"))
    hh_inet = total(num(df, "householdsWithInternet"))

    roads = {s: total(num(df, f"infrastructure.{s}.length")) for s in ROAD_SURFACES}

    income = num(df, "averageDailyIncome")
    with_income = int((income > 0).sum())
    youth, working, elderly = _age_groups(population, labor, seniors, lf_60_64)

    signal = text(df, "mobileSignal")
    spr = text(df, "studentsPerRoom")

    m = {
        "year": int(year),
        "total_population": population,
        "total_male": total(num(df, "population.totalMale")),
        "total_female": total(num(df, "population.totalFemale")),
        "total_households": households,
        "total_labor_workforce": labor,
        "total_unemployed": unemployed,
        "employment_rate": (labor - unemployed) / labor * 100 if labor > 0 else 0,
        "participation_rate": labor / population * 100 if population > 0 else 0,
        "average_daily_income": float(income[income > 0].sum()) / with_income if with_income else 0,
        "sitios_with_income": with_income,
        "electricity_percent": safe_percentage(hh_elec, households),
        "toilet_percent": safe_percentage(hh_toilet, households),
        "internet_percent": safe_percentage(hh_inet, households),
        "households_with_electricity": hh_elec,
        "households_with_toilet": hh_toilet,
        "households_with_internet": hh_inet,
        "total_road_length": sum(roads.values()),
        "road_concrete": roads["concrete"],
        "road_asphalt": roads["asphalt"],
        "road_gravel": roads["gravel"],
        "road_natural": roads["natural"],
        "income_cluster_counts": _income_clusters(income, monthly_threshold),
        "sitio_count": len(df),
        "youth": youth,
        "working_age": working,
        "elderly": elderly,
        "total_school_age_children": total(num(df, "schoolAgeChildren")),
        "total_muslim": total(num(df, "vulnerableGroups.muslimCount")),
        "total_ip": total(num(df, "vulnerableGroups.ipCount")),
        "total_voters": total(num(df, "registeredVoters")),
        "total_seniors": seniors,
        "total_osy": total(num(df, "vulnerableGroups.outOfSchoolYouth")),
        "total_no_birth_cert": total(num(df, "vulnerableGroups.noBirthCertCount")),
        "total_no_national_id": total(num(df, "vulnerableGroups.noNationalIDCount")),
        "total_farmers": total(num(df, "agriculture.numberOfFarmers")),
        "total_farmer_orgs": total(num(df, "agriculture.numberOfAssociations")),
        "total_farm_area": total(num(df, "agriculture.estimatedFarmAreaHectares")),
        "total_dogs": total(num(df, "pets.dogsCount")),
        "total_cats": total(num(df, "pets.catsCount")),
        "vaccinated_dogs": total(num(df, "pets.vaccinatedDogs")),
        "vaccinated_cats": total(num(df, "pets.vaccinatedCats")),
        "water_natural_functioning": total(num(df, "waterSources.natural.functioningCount")),
        "water_level1_functioning": total(num(df, "waterSources.level1.functioningCount")),
        "water_level2_functioning": total(num(df, "waterSources.level2.functioningCount")),
        "water_level3_functioning": total(num(df, "waterSources.level3.functioningCount")),
    }
    for src, key in SANITATION.items():
        m[key] = int(flag(df, f"sanitationTypes.{src}").sum())
    for tier, key in SIGNAL_TIERS.items():
        m[key] = int((signal == tier).sum())
    m["signal_none"] = int(signal.isin(["none", ""]).sum())
    for tier, key in CLASSROOM_TIERS.items():
        m[key] = int((spr == tier).sum())
    m["students_per_room_no_classroom"] += int((spr == "").sum())
    return m

def aggregate_metrics_for_year(records, year, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    """
    Province-level (or group-level) totals and rates for one survey year.
    Records without a profile for `year` are ignored.
    """
    return _metrics_from_frame(profiles_frame(records, year), year, monthly_threshold)

def get_multi_year_metrics(records, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> list:
    years = get_all_available_years(records)
    return [aggregate_metrics_for_year(records, y, monthly_threshold) for y in reversed(years)]

YEAR_TRENDS = {
    "population": "total_population",
    "households": "total_households",
    "voters": "total_voters",
    "labor_workforce": "total_labor_workforce",
    "employment_rate": "employment_rate",
    "average_income": "average_daily_income",
    "electricity_access": "electricity_percent",
    "toilet_access": "toilet_percent",
    "internet_access": "internet_percent",
    "road_length": "total_road_length",
}

def get_year_comparison(records, current_year, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    years = get_all_available_years(records)
    cy = int(current_year)
    previous_year = None
    if cy in years:
        idx = years.index(cy)
        if idx < len(years) - 1:
            previous_year = years[idx + 1]

    current = aggregate_metrics_for_year(records, cy, monthly_threshold)
    previous = aggregate_metrics_for_year(records, previous_year, monthly_threshold) if previous_year else None

    trends = {name: None for name in list(YEAR_TRENDS) + ["poor_count"]}
    if previous is not None:
        for name, key in YEAR_TRENDS.items():
            trends[name] = calculate_yoy_change(current[key], previous[key])
        cur_poor = current["income_cluster_counts"]["poor"]
        prev_poor = previous["income_cluster_counts"]["poor"]
        poor = calculate_yoy_change(cur_poor, prev_poor)
        if poor is not None:
            # fewer poor sitios is the good direction
            poor["is_positive"] = cur_poor <= prev_poor
        trends["poor_count"] = poor

    return {"current": current, "previous": previous, "trends": trends}

# ---------- time series ----------
METRIC_LABELS = {
    "total_population": "Total Population",
    "total_male": "Male",
    "total_female": "Female",
    "total_households": "Households",
    "total_labor_workforce": "Labor Workforce",
    "total_unemployed": "Unemployed",
    "employment_rate": "Employment Rate",
    "participation_rate": "Participation Rate",
    "average_daily_income": "Avg Daily Income",
    "electricity_percent": "Electricity %",
    "toilet_percent": "Toilet %",
    "internet_percent": "Internet %",
    "youth": "Youth (0-14)",
    "working_age": "Working Age (15-64)",
    "elderly": "Elderly (65+)",
    "total_school_age_children": "School-Age Children",
    "total_muslim": "Muslim Population",
    "total_ip": "Indigenous People",
    "total_voters": "Registered Voters",
    "total_seniors": "Senior Citizens",
    "total_osy": "Out of School Youth",
    "total_no_birth_cert": "No Birth Certificate",
    "total_no_national_id": "No PhilSys ID",
    "total_farmers": "Farmers",
    "total_farmer_orgs": "Farmer Organizations",
    "total_farm_area": "Farm Area (ha)",
    "total_dogs": "Dogs",
    "total_cats": "Cats",
    "vaccinated_dogs": "Vaccinated Dogs",
    "vaccinated_cats": "Vaccinated Cats",
    "water_natural_functioning": "Natural Source (Functional)",
    "water_level1_functioning": "Level 1 (Functional)",
    "water_level2_functioning": "Level 2 (Functional)",
    "water_level3_functioning": "Level 3 (Functional)",
    "sanitation_water_sealed": "Water Sealed",
    "sanitation_pit_latrine": "Pit Latrine",
    "sanitation_community_cr": "Community CR",
    "sanitation_open_defecation": "Open Defecation",
    "signal_5g": "5G Coverage",
    "signal_4g": "4G Coverage",
    "signal_3g": "3G Coverage",
    "signal_2g": "2G Coverage",
    "signal_none": "No Signal",
    "students_per_room_less_than_46": "<46 Students/Room",
    "students_per_room_46_50": "46-50 Students/Room",
    "students_per_room_51_55": "51-55 Students/Room",
    "students_per_room_more_than_56": ">56 Students/Room",
    "students_per_room_no_classroom": "No Classroom",
    "road_concrete": "Concrete Roads",
    "road_asphalt": "Asphalt Roads",
    "road_gravel": "Gravel Roads",
    "road_natural": "Natural Roads",
    "total_road_length": "Total Road Length",
    "households_with_electricity": "Electricity",
    "households_with_toilet": "Sanitary Toilet",
    "households_with_internet": "Internet",
}

BLUE, GREEN, PINK, ORANGE, PURPLE = (
    "hsl(217, 91%, 60%)", "hsl(142, 71%, 45%)", "hsl(330, 81%, 60%)",
    "hsl(25, 95%, 53%)", "hsl(263, 70%, 50%)",
)
YELLOW, RED, SLATE, AMBER, VIOLET, SKY = (
    "hsl(45, 93%, 47%)", "hsl(0, 84%, 60%)", "hsl(200, 18%, 46%)",
    "hsl(38, 92%, 50%)", "hsl(280, 65%, 60%)", "hsl(200, 70%, 50%)",
)

METRIC_COLORS = {
    "total_population": BLUE, "total_male": BLUE, "total_female": PINK,
    "total_households": GREEN, "total_labor_workforce": PURPLE, "total_unemployed": RED,
    "employment_rate": GREEN, "participation_rate": SKY, "average_daily_income": YELLOW,
    "electricity_percent": YELLOW, "toilet_percent": SKY, "internet_percent": VIOLET,
    "youth": ORANGE, "working_age": BLUE, "elderly": SLATE,
    "total_school_age_children": BLUE, "total_muslim": GREEN, "total_ip": PURPLE,
    "total_voters": VIOLET, "total_seniors": ORANGE, "total_osy": RED,
    "total_no_birth_cert": YELLOW, "total_no_national_id": SLATE,
    "total_farmers": AMBER, "total_farmer_orgs": GREEN, "total_farm_area": "hsl(120, 60%, 50%)",
    "total_dogs": AMBER, "total_cats": "hsl(24, 95%, 53%)",
    "vaccinated_dogs": GREEN, "vaccinated_cats": "hsl(173, 80%, 40%)",
    "water_natural_functioning": GREEN, "water_level1_functioning": BLUE,
    "water_level2_functioning": YELLOW, "water_level3_functioning": PURPLE,
    "sanitation_water_sealed": GREEN, "sanitation_pit_latrine": YELLOW,
    "sanitation_community_cr": BLUE, "sanitation_open_defecation": RED,
    "signal_5g": GREEN, "signal_4g": BLUE, "signal_3g": YELLOW,
    "signal_2g": "hsl(27, 87%, 67%)", "signal_none": RED,
    "students_per_room_less_than_46": BLUE, "students_per_room_46_50": YELLOW,
    "students_per_room_51_55": ORANGE, "students_per_room_more_than_56": RED,
    "students_per_room_no_classroom": "hsl(0, 0%, 30%)",
    "road_concrete": BLUE, "road_asphalt": "hsl(215, 20%, 55%)",
    "road_gravel": "hsl(27, 87%, 67%)", "road_natural": "hsl(25, 5%, 45%)",
    "total_road_length": ORANGE,
    "households_with_electricity": YELLOW, "households_with_toilet": BLUE,
    "households_with_internet": GREEN,
}

def _round1(v) -> float:
    return round(float(v), 1) if isinstance(v, (int, float, np.number)) else 0

def prepare_time_series_data(records, metrics, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    yearly = get_multi_year_metrics(records, monthly_threshold)
    categories = [str(m["year"]) for m in yearly]
    series = [
        {
            "name": METRIC_LABELS.get(metric, metric),
            "data": [_round1(m.get(metric)) for m in yearly],
            "color": METRIC_COLORS.get(metric),
        }
        for metric in metrics
    ]
    return {"categories": categories, "series": series}

def time_series_frame(ts: dict) -> pd.DataFrame:
    """Long table (Year, Series, Value) for plotting."""
    rows = []
    for s in ts["series"]:
        for year, value in zip(ts["categories"], s["data"]):
            rows.append({"Year": year, "Series": s["name"], "Value": value})
    return pd.DataFrame(rows, columns=["Year", "Series", "Value"])

# ---------- panel aggregations ----------
def aggregate_demographics(records, year=None) -> dict:
    df = profiles_frame(records, year)

    population = total(num(df, "totalPopulation"))
    male = total(num(df, "population.totalMale"))
    female = total(num(df, "population.totalFemale"))
    households = total(num(df, "totalHouseholds"))
    voters = total(num(df, "registeredVoters"))
    seniors = total(num(df, "vulnerableGroups.seniorsCount"))
    labor = total(num(df, "laborForceCount"))
    unemployed = total(num(df, "vulnerableGroups.unemployedCount"))
    lf_60_64 = total(num(df, "vulnerableGroups.laborForce60to64Count"))
    osy = num(df, "vulnerableGroups.outOfSchoolYouth")

    youth, working, elderly = _age_groups(population, labor, seniors, lf_60_64)

    return {
        "total_population": population,
        "total_male": male,
        "total_female": female,
        "total_households": households,
        "total_voters": voters,
        "total_seniors": seniors,
        "total_labor_workforce": labor,
        "total_unemployed": unemployed,
        "total_no_birth_cert": total(num(df, "vulnerableGroups.noBirthCertCount")),
        "total_no_national_id": total(num(df, "vulnerableGroups.noNationalIDCount")),
        "total_muslim": total(num(df, "vulnerableGroups.muslimCount")),
        "total_ip": total(num(df, "vulnerableGroups.ipCount")),
        "total_osy": total(osy[osy > 0]),
        "sitios_with_osy": int((osy > 0).sum()),
        "total_labor_force_60_to_64": lf_60_64,
        "total_school_age_children": total(num(df, "schoolAgeChildren")),
        "average_household_size": population / households if households > 0 else 0,
        "male_percent": safe_percentage(male, population),
        "female_percent": safe_percentage(female, population),
        "voter_registration_percent": safe_percentage(voters, population),
        "unemployment_rate": safe_percentage(unemployed, labor),
        "senior_percent": safe_percentage(seniors, population),
        "youth": youth,
        "working_age": working,
        "elderly": elderly,
        "youth_percent": safe_percentage(youth, population),
        "working_age_percent": safe_percentage(working, population),
        "elderly_percent": safe_percentage(elderly, population),
        # classification is a property of the sitio, not of a survey year
        "gida_count": int(df["__Gida"].sum()) if len(df) else 0,
        "indigenous_count": int(df["__Indigenous"].sum()) if len(df) else 0,
        "conflict_count": int(df["__Conflict"].sum()) if len(df) else 0,
    }

def aggregate_utilities(records, year=None) -> dict:
    df = profiles_frame(records, year)
    households = total(num(df, "totalHouseholds"))
    hh_elec = total(num(df, "householdsWithElectricity"))
    hh_toilet = total(num(df, "householdsWithToilet"))
    hh_inet = total(num(df, "householdsWithInternet"))
    signal = text(df, "mobileSignal")

    out = {
        "total_households": households,
        "households_with_electricity": hh_elec,
        "households_with_toilet": hh_toilet,
        "households_with_internet": hh_inet,
        "electricity_grid": total(num(df, "electricitySources.grid")),
        "electricity_solar": total(num(df, "electricitySources.solar")),
        "electricity_battery": total(num(df, "electricitySources.battery")),
        "electricity_generator": total(num(df, "electricitySources.generator")),
    }
    for tier, key in SIGNAL_TIERS.items():
        out[key] = int((signal == tier).sum())
    # only an explicit 'none' counts here
    out["signal_none"] = int((signal == "none").sum())
    out["electricity_percent"] = safe_percentage(hh_elec, households)
    out["toilet_percent"] = safe_percentage(hh_toilet, households)
    out["internet_percent"] = safe_percentage(hh_inet, households)
    return out

def _condition_buckets(conditions: pd.Series) -> dict:
    return {label: int((conditions == score).sum()) for score, label in CONDITION_BUCKETS.items()}

def aggregate_facilities(records, year=None) -> dict:
    """
    Per facility type:
      - exists / notExist: sitios answering 'yes' / 'no'
      - excellent..bad: condition 5..1 among existing facilities
      - averageDistance: mean distanceToNearest over sitios without the facility
    """
    df = profiles_frame(records, year)
    out = {}
    for name in FACILITIES:
        exists = text(df, f"facilities.{name}.exists")
        cond = num(df, f"facilities.{name}.condition")
        dist = num(df, f"facilities.{name}.distanceToNearest")
        has = exists == "yes"
        missing = exists == "no"
        with_dist = dist[missing & (dist != 0)]
        out[name] = {
            "exists": int(has.sum()),
            **_condition_buckets(cond[has]),
            "not_exist": int(missing.sum()),
            "average_distance": float(with_dist.mean()) if not with_dist.empty else 0,
        }
    return out

def _count_listed(series: pd.Series) -> dict:
    """How many times each value appears across the per-sitio lists."""
    exploded = series.explode().dropna()
    if exploded.empty:
        return {}
    return {str(k): int(v) for k, v in exploded.value_counts(sort=False).items()}

def aggregate_livelihood(records, year=None, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    df = profiles_frame(records, year)

    income = num(df, "averageDailyIncome")
    with_income = income[income > 0]
    households = total(num(df, "totalHouseholds"))
    cats = total(num(df, "pets.catsCount"))
    dogs = total(num(df, "pets.dogsCount"))
    vcats = total(num(df, "pets.vaccinatedCats"))
    vdogs = total(num(df, "pets.vaccinatedDogs"))
    gardens = total(num(df, "backyardGardens.householdsWithGardens"))

    return {
        "total_farmers": total(num(df, "agriculture.numberOfFarmers")),
        "total_farm_area": total(num(df, "agriculture.estimatedFarmAreaHectares")),
        "total_farmer_orgs": total(num(df, "agriculture.numberOfAssociations")),
        "average_daily_income_total": total(with_income),
        "sitios_with_income": int(len(with_income)),
        "average_daily_income_overall": float(with_income.mean()) if not with_income.empty else 0,
        "worker_private_household": total(num(df, "workerClass.privateHousehold")),
        "worker_private_establishment": total(num(df, "workerClass.privateEstablishment")),
        "worker_government": total(num(df, "workerClass.government")),
        "worker_self_employed": total(num(df, "workerClass.selfEmployed")),
        "worker_employer": total(num(df, "workerClass.employer")),
        "worker_ofw": total(num(df, "workerClass.ofw")),
        "crop_counts": _count_listed(items(df, "crops")),
        "livestock_counts": _count_listed(items(df, "livestock")),
        "income_cluster_counts": _income_clusters(income, monthly_threshold),
        "total_cats": cats,
        "total_dogs": dogs,
        "total_vaccinated_cats": vcats,
        "total_vaccinated_dogs": vdogs,
        "cat_vaccination_rate": vcats / cats * 100 if cats > 0 else 0,
        "dog_vaccination_rate": vdogs / dogs * 100 if dogs > 0 else 0,
        "total_households_with_gardens": gardens,
        "backyard_garden_rate": gardens / households * 100 if households > 0 else 0,
        "backyard_crop_counts": _count_listed(items(df, "backyardGardens.commonCrops")),
    }

def aggregate_infrastructure(records, year=None) -> dict:
    df = profiles_frame(records, year)
    out = {}
    for surface in ROAD_SURFACES:
        has = text(df, f"infrastructure.{surface}.exists") == "yes"
        out[f"road_{surface}"] = {
            "exists": int(has.sum()),
            "total_length": total(num(df, f"infrastructure.{surface}.length")[has]),
            **_condition_buckets(num(df, f"infrastructure.{surface}.condition")[has]),
        }
    for level in WATER_LEVELS:
        has = text(df, f"waterSources.{level}.exists") == "yes"
        out[f"water_{level}"] = {
            "exists": int(has.sum()),
            "functioning": total(num(df, f"waterSources.{level}.functioningCount")[has]),
            "not_functioning": total(num(df, f"waterSources.{level}.notFunctioningCount")[has]),
        }
    for src, key in SANITATION.items():
        out[key] = int(flag(df, f"sanitationTypes.{src}").sum())
    spr = text(df, "studentsPerRoom")
    for tier, key in CLASSROOM_TIERS.items():
        out[key] = int((spr == tier).sum())
    return out

def _priority_rating(priorities, name) -> float:
    for p in priorities:
        if isinstance(p, dict) and p.get("name") == name:
            return p.get("rating") or 0
    return 0

def aggregate_priorities(records, year=None) -> dict:
    df = profiles_frame(records, year)
    plist = items(df, "priorities")
    out = {}
    for name in PRIORITY_NAMES:
        ratings = plist.map(lambda ps: _priority_rating(ps, name))
        out[name] = {"total_score": total(ratings), "urgent_count": int((ratings == 3).sum())}
    return out

def aggregate_safety(records, year=None) -> dict:
    df = profiles_frame(records, year)
    out = {}
    for hazard in HAZARDS:
        freq = num(df, f"hazards.{hazard}.frequency")
        vc = freq.value_counts(sort=False)
        out[f"{hazard}_frequency_counts"] = {
            (int(k) if float(k).is_integer() else float(k)): int(v) for k, v in vc.items()
        }
    food = text(df, "foodSecurity")
    out["food_secure"] = int((food == "secure").sum())
    out["food_seasonal_scarcity"] = int((food == "seasonal_scarcity").sum())
    out["food_critical_shortage"] = int((food == "critical_shortage").sum())
    return out

def aggregate_geographic(records, year=None) -> dict:
    df = profiles_frame(records, year)
    cols = ["municipality", "sitio_count", "population", "households", "farmers"]
    if df.empty:
        return {"total_municipalities": 0, "total_barangays": 0, "municipalities": pd.DataFrame(columns=cols)}

    work = pd.DataFrame({
        "municipality": text(df, "municipality"),
        "barangay": text(df, "barangay"),
        "population": num(df, "totalPopulation"),
        "households": num(df, "totalHouseholds"),
        "farmers": num(df, "agriculture.numberOfFarmers"),
    })
    table = work.groupby("municipality", sort=False).agg(
        sitio_count=("municipality", "size"),
        population=("population", "sum"),
        households=("households", "sum"),
        farmers=("farmers", "sum"),
    ).reset_index()
    table = table.sort_values("population", ascending=False, kind="stable").reset_index(drop=True)

    return {
        "total_municipalities": int(work["municipality"].nunique()),
        "total_barangays": int((work["municipality"] + "-" + work["barangay"]).nunique()),
        "municipalities": table[cols],
    }

def aggregate_barangays(records, municipality=None, year=None) -> pd.DataFrame:
    df = profiles_frame(records, year)
    cols = ["barangay", "municipality", "sitio_count", "population", "households"]
    if df.empty:
        return pd.DataFrame(columns=cols)

    work = pd.DataFrame({
        "municipality": text(df, "municipality"),
        "barangay": text(df, "barangay"),
        "population": num(df, "totalPopulation"),
        "households": num(df, "totalHouseholds"),
    })
    if municipality:
        work = work[work["municipality"] == municipality]
    if work.empty:
        return pd.DataFrame(columns=cols)

    table = work.groupby(["municipality", "barangay"], sort=False).agg(
        sitio_count=("barangay", "size"),
        population=("population", "sum"),
        households=("households", "sum"),
    ).reset_index()
    return table.sort_values("population", ascending=False, kind="stable").reset_index(drop=True)[cols]

def aggregate_access_modes(records, year=None) -> dict:
    df = profiles_frame(records, year)
    return {
        "paved_road": int(flag(df, "mainAccess.pavedRoad").sum()),
        "unpaved_road": int(flag(df, "mainAccess.unpavedRoad").sum()),
        "footpath": int(flag(df, "mainAccess.footpath").sum()),
        "boat": int(flag(df, "mainAccess.boat").sum()),
    }

def aggregate_coordinates(records, year=None) -> dict:
    df = profiles_frame(records, year)
    cols = ["id", "name", "barangay", "municipality", "latitude", "longitude"]
    pts = pd.DataFrame({
        "id": df["__RecordId"] if len(df) else pd.Series(dtype=object),
        "name": text(df, "sitioName"),
        "barangay": text(df, "barangay"),
        "municipality": text(df, "municipality"),
        "latitude": num(df, "latitude"),
        "longitude": num(df, "longitude"),
    }, columns=cols)
    pts = pts[(pts["latitude"] != 0) & (pts["longitude"] != 0)].reset_index(drop=True)

    if pts.empty:
        return {
            "sitios": pts,
            "bounds": {"min_lat": 0, "max_lat": 0, "min_lng": 0, "max_lng": 0},
            "center": {"lat": 0, "lng": 0},
        }
    return {
        "sitios": pts,
        "bounds": {
            "min_lat": float(pts["latitude"].min()),
            "max_lat": float(pts["latitude"].max()),
            "min_lng": float(pts["longitude"].min()),
            "max_lng": float(pts["longitude"].max()),
        },
        "center": {"lat": float(pts["latitude"].mean()), "lng": float(pts["longitude"].mean())},
    }

def _ppa_name(rec) -> str:
    ppa = rec.get("ppa") if isinstance(rec, dict) else None
    name = ppa.get("name") if isinstance(ppa, dict) else None
    return name or "Unknown"

def aggregate_recommendations(records, year=None) -> dict:
    df = profiles_frame(records, year)
    recs = items(df, "recommendations")
    counts = recs.map(len)

    by_ppa = {}
    for rec_list in recs:
        for rec in rec_list:
            name = _ppa_name(rec)
            by_ppa[name] = by_ppa.get(name, 0) + 1

    top = pd.DataFrame({"sitio_name": text(df, "sitioName"), "count": counts}, columns=["sitio_name", "count"])
    top = top[top["count"] > 0].sort_values("count", ascending=False, kind="stable")
    return {
        "total_recommendations": int(counts.sum()) if len(counts) else 0,
        "recommendations_by_ppa": by_ppa,
        "sitios_with_most_recommendations": top.head(TOP_RECOMMENDED_SITIOS).reset_index(drop=True),
    }

def aggregate_all(records, year=None, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    """Every dashboard panel for one year (latest per sitio when year is None)."""
    logger.info("Aggregating %d sitios (year=%s)", len(records), year if year is not None else "latest")
    return {
        "demographics": aggregate_demographics(records, year),
        "utilities": aggregate_utilities(records, year),
        "facilities": aggregate_facilities(records, year),
        "livelihood": aggregate_livelihood(records, year, monthly_threshold),
        "infrastructure": aggregate_infrastructure(records, year),
        "priorities": aggregate_priorities(records, year),
        "safety": aggregate_safety(records, year),
        "geographic": aggregate_geographic(records, year),
        "access_modes": aggregate_access_modes(records, year),
        "coordinates": aggregate_coordinates(records, year),
        "recommendations": aggregate_recommendations(records, year),
    }
