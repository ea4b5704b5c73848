"""Client-side helpers: encrypt, then submit."""


def register(system, income=0, health=0, education=0, satisfaction=0):
    enc = system.encrypt
    return system.register_citizen(enc(income), enc(health), enc(education), enc(satisfaction))


def propose(system, tax_rate, healthcare_funding, education_investment, **meta):
    enc = system.encrypt
    return system.propose_policy(enc(tax_rate), enc(healthcare_funding), enc(education_investment), **meta)
