from types import SimpleNamespace

from registry.services.scoring import calculate_match_score


def identity(**fields):
    base = dict(name='', dob=None, contact='', email='', address='')
    base.update(fields)
    return SimpleNamespace(**base)


def test_typo_in_surname_with_same_birth_date():
    score, reasons = calculate_match_score(
        identity(name='Rajesh Kumar', dob='1980-05-15'),
        identity(name='Rajesh Kumarr', dob='1980-05-15'),
    )
    # (0.92 * 40 + 25) / 65
    assert score == 95
    assert reasons == ["Name highly similar (92%)", "Date of birth matches"]


def test_all_fields_agree():
    score, reasons = calculate_match_score(
        identity(name='Amit Patel', dob='1975-01-20', contact='+91 98765 43212', email='amit@example.com'),
        identity(name='amit patel', dob='1975-01-20', contact='9876543212', email='AMIT@example.com'),
    )
    assert score == 100
    assert reasons == [
        "Name highly similar (100%)",
        "Date of birth matches",
        "Phone number matches",
        "Email matches",
    ]


def test_field_missing_on_one_side_is_not_weighed():
    a = identity(name='Amit Patel', dob='1975-01-20')
    b = identity(name='Amit Patel', dob='1975-01-20')
    baseline, _ = calculate_match_score(a, b)

    a.email = 'amit@example.com'
    a.contact = '9876543212'
    with_extra, reasons = calculate_match_score(a, b)

    assert baseline == with_extra == 100
    assert "Email matches" not in reasons


def test_birth_date_mismatch_lowers_score():
    score, reasons = calculate_match_score(
        identity(name='Amit Patel', dob='1975-01-20'),
        identity(name='Amit Patel', dob='1975-01-21'),
    )
    # 40 / 65
    assert score == 62
    assert reasons == ["Name highly similar (100%)"]


def test_name_similar_band():
    score, reasons = calculate_match_score(identity(name='Sunita Sharma'), identity(name='Sunita Verma'))
    assert score == 84
    assert reasons == ["Name similar (84%)"]


def test_dissimilar_names_give_no_reason():
    score, reasons = calculate_match_score(identity(name='Kumar'), identity(name='Kumar Venkataraman Subramaniam'))
    assert score == 42
    assert reasons == []


def test_address_reason_and_weight():
    score, reasons = calculate_match_score(
        identity(name='Meera Iyer', address='12, M.G. Road, Pune'),
        identity(name='Meera Iyer', address='12 MG Road Pune'),
    )
    assert score == 100
    assert reasons == ["Name highly similar (100%)", "Address similar (100%)"]


def test_dissimilar_address_counts_against():
    score, reasons = calculate_match_score(
        identity(name='Meera Iyer', address='12 MG Road Pune'),
        identity(name='Meera Iyer', address='48 Park Street Kolkata'),
    )
    # 40 / 45
    assert score == 89
    assert all(not r.startswith("Address") for r in reasons)


def test_score_is_an_integer_in_range():
    pairs = [
        (identity(name=''), identity(name='')),
        (identity(name='A'), identity(name='Zzzzzzzzzz', dob='2000-01-01')),
        (identity(name='Li Wu', contact='1'), identity(name='Wu Li', contact='2')),
    ]
    for a, b in pairs:
        score, _ = calculate_match_score(a, b)
        assert isinstance(score, int)
        assert 0 <= score <= 100
