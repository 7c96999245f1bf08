# agrireach/opportunities/skills.py
"""
Skill catalogue and job/worker skill matching.

Worker skills are ``{name, level, category}`` with levels 1 (beginner) to
4 (expert). Job requirements are ``{name, min_level?, required}``. Both also
accept legacy lists of plain skill names.
"""
import math

SKILL_LEVELS = {1: 'Beginner', 2: 'Intermediate', 3: 'Advanced', 4: 'Expert'}
DEFAULT_LEVEL = 2
DEFAULT_CATEGORY = 'Farm Management'

REQUIRED_WEIGHT = 1.0
OPTIONAL_WEIGHT = 0.5
LEVEL_GAP_PENALTY = 0.25

SKILL_CATEGORIES = {
    'Crop Farming': [
        'Rice Cultivation', 'Vegetable Farming', 'Fruit Growing', 'Crop Harvesting', 'Seed Planting',
        'Organic Farming', 'Crop Rotation', 'Composting', 'Pest Management', 'Weed Control',
        'Soil Preparation', 'Seedling Care',
    ],
    'Livestock & Poultry': [
        'Pig Raising', 'Chicken Farming', 'Goat Rearing', 'Cattle Care', 'Duck Farming', 'Livestock Feeding',
        'Animal Health', 'Breeding', 'Milking', 'Egg Collection', 'Poultry Management', 'Livestock Housing',
    ],
    'Fishing & Aquaculture': [
        'Fish Farming', 'Net Fishing', 'Aquaculture', 'Fish Processing', 'Boat Operation', 'Catch Handling',
        'Fish Preservation', 'Aquatic Farming', 'Crab Farming', 'Shrimp Farming', 'Fish Feeding',
        'Water Quality Management',
    ],
    'Equipment & Tools': [
        'Hand Tools', 'Farm Machinery', 'Tractor Operation', 'Irrigation Systems', 'Harvesting Equipment',
        'Maintenance & Repair', 'Tool Sharpening', 'Equipment Safety', 'Basic Repairs',
    ],
    'Processing & Value-Adding': [
        'Food Processing', 'Packaging', 'Drying & Preservation', 'Fermentation', 'Product Quality Control',
        'Traditional Methods', 'Pickling', 'Smoking', 'Canning', 'Product Labeling',
    ],
    'Farm Management': [
        'Farm Planning', 'Resource Management', 'Record Keeping', 'Budget Management', 'Market Knowledge',
        'Customer Relations', 'Seasonal Planning', 'Inventory Management', 'Sales & Marketing', 'Farm Safety',
        'Logistics Coordination', 'Team Leadership', 'Compliance Management',
    ],
}


def get_all_skills():
    return [skill for skills in SKILL_CATEGORIES.values() for skill in skills]


def get_skill_category(name):
    for category, skills in SKILL_CATEGORIES.items():
        if name in skills:
            return category
    return None


def normalize_skills(skills):
    """Convert legacy string skills to ``{name, level, category}`` dicts."""
    normalized = []
    for skill in skills or []:
        if isinstance(skill, str):
            normalized.append({'name': skill, 'level': DEFAULT_LEVEL,
                               'category': get_skill_category(skill) or DEFAULT_CATEGORY})
        elif isinstance(skill, dict) and skill.get('name'):
            normalized.append({'name': skill['name'],
                               'level': _level(skill.get('level'), DEFAULT_LEVEL),
                               'category': skill.get('category') or get_skill_category(skill['name'])
                               or DEFAULT_CATEGORY})
    return normalized


def normalize_skill_requirements(requirements):
    """Convert legacy string requirements to required ``{name, required}`` dicts."""
    normalized = []
    for requirement in requirements or []:
        if isinstance(requirement, str):
            normalized.append({'name': requirement, 'required': True})
        elif isinstance(requirement, dict) and requirement.get('name'):
            item = {'name': requirement['name'], 'required': bool(requirement.get('required'))}
            if requirement.get('min_level'):
                item['min_level'] = _level(requirement['min_level'], 1)
            normalized.append(item)
    return normalized


def _level(value, default):
    try:
        level = int(value)
    except (TypeError, ValueError):
        return default
    return min(max(level, 1), 4)


def calculate_match_score(job_skills, worker_skills):
    """Score how well ``worker_skills`` cover ``job_skills``.

    Required skills weigh 1.0 and optional ones 0.5. A worker at or above the
    minimum level earns the full weight; each level short of it costs 25%.
    Returns ``{'score', 'matched', 'total', 'details'}`` with score in 0-100.
    """
    requirements = normalize_skill_requirements(job_skills)
    if not requirements:
        return {'score': 0, 'matched': 0, 'total': 0, 'details': []}

    by_name = {skill['name'].lower(): skill for skill in reversed(normalize_skills(worker_skills))}

    details = []
    total_weight = 0.0
    earned_weight = 0.0
    matched = 0

    for requirement in requirements:
        weight = REQUIRED_WEIGHT if requirement['required'] else OPTIONAL_WEIGHT
        required_level = requirement.get('min_level') or 1
        total_weight += weight

        worker_skill = by_name.get(requirement['name'].lower())
        if worker_skill is None:
            details.append({'skill': requirement['name'], 'match': False,
                            'required_level': required_level, 'weight': 0})
            continue

        level = worker_skill['level']
        if level >= required_level:
            skill_weight = weight
        else:
            skill_weight = weight * (1 - LEVEL_GAP_PENALTY * (required_level - level))
        earned_weight += skill_weight
        matched += 1
        details.append({'skill': requirement['name'], 'match': True, 'level': level,
                        'required_level': required_level, 'weight': skill_weight})

    # Half-up rounding
    score = int(math.floor(earned_weight / total_weight * 100 + 0.5)) if total_weight else 0
    return {'score': score, 'matched': matched, 'total': len(requirements), 'details': details}
