from agrireach.opportunities.skills import (calculate_match_score, normalize_skills, normalize_skill_requirements,
                                           get_skill_category)


def test_legacy_skill_strings_become_intermediate():
    skills = normalize_skills(['Rice Cultivation', 'Basket Weaving'])
    assert skills == [
        {'name': 'Rice Cultivation', 'level': 2, 'category': 'Crop Farming'},
        {'name': 'Basket Weaving', 'level': 2, 'category': 'Farm Management'},
    ]


def test_legacy_requirement_strings_are_required():
    assert normalize_skill_requirements(['Milking']) == [{'name': 'Milking', 'required': True}]


def test_skill_category_lookup():
    assert get_skill_category('Tractor Operation') == 'Equipment & Tools'
    assert get_skill_category('Unknown') is None


def test_no_requirements_scores_zero():
    assert calculate_match_score([], ['Milking']) == {'score': 0, 'matched': 0, 'total': 0, 'details': []}


def test_full_match_is_case_insensitive():
    result = calculate_match_score(['Rice Cultivation'], [{'name': 'rice cultivation', 'level': 3}])
    assert result['score'] == 100
    assert result['matched'] == 1
    assert result['total'] == 1


def test_level_gap_gives_partial_credit():
    job = [{'name': 'Tractor Operation', 'min_level': 4, 'required': True}]
    worker = [{'name': 'Tractor Operation', 'level': 2, 'category': 'Equipment & Tools'}]
    result = calculate_match_score(job, worker)
    # Two levels short: 1.0 * (1 - 0.5)
    assert result['score'] == 50
    assert result['details'][0]['weight'] == 0.5
    assert result['details'][0]['match'] is True


def test_optional_skills_weigh_half():
    job = [
        {'name': 'Milking', 'required': True},
        {'name': 'Breeding', 'required': False},
    ]
    result = calculate_match_score(job, [{'name': 'Breeding', 'level': 1}])
    # 0.5 earned of 1.5 total
    assert result['score'] == 33
    assert result['matched'] == 1
    missing = result['details'][0]
    assert missing == {'skill': 'Milking', 'match': False, 'required_level': 1, 'weight': 0}


def test_score_rounds_half_up():
    job = [
        {'name': 'A', 'required': True},
        {'name': 'B', 'required': True},
        {'name': 'C', 'required': True},
        {'name': 'D', 'required': True},
        {'name': 'E', 'required': True},
        {'name': 'F', 'required': True},
        {'name': 'G', 'required': True},
        {'name': 'H', 'required': True},
    ]
    # 1 of 8 = 12.5%
    result = calculate_match_score(job, ['A'])
    assert result['score'] == 13
