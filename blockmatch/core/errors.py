"""블록 매칭 예외 정의"""


class ConfigurationError(ValueError):
    """
    실행 전 입력/설정 검증 실패

    특징점 0개, 필수 입력(FixedImage, MovingImage, FeaturePoints) 누락,
    반경/워커 수/경계 조건 설정 오류, 차원 불일치 시 발생한다.
    워커가 디스패치되기 전에만 발생하며 부분 결과는 만들어지지 않는다.
    """
